"""winston: smart contract audit pipeline for Solidity and Rust sources."""

__version__ = "1.0.0"
