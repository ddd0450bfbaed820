"""Service-facing applications: outbound clients and the orchestration policy layer."""
