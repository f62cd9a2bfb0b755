"""L3 Detection — system profile, backend availability, installed checks."""
