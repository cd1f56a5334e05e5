"""Adapters implementing the domain ports (storage, forwarding, mail source, queue, persistence)."""
