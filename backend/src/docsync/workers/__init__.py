"""Processing worker, queue consumer and scheduled maintenance tasks."""
