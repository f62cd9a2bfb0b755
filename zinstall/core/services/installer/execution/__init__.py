"""L4 Execution — subprocesses, provisioning, GitHub releases, hooks."""
