"""L5 Orchestration — the Installer service."""
