"""HTTP API for DocuSync."""
