"""RevaultPass: a local password store with optional passphrase encryption."""

__version__ = "0.1.0"
