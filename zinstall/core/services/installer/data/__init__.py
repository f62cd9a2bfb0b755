"""L0 Data — backend table and recipe index."""
