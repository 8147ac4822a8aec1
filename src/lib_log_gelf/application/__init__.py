"""Application layer: ports and use cases for GELF delivery."""
