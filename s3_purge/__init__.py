"""Interactive, confirmation-gated deletion of S3 buckets."""
