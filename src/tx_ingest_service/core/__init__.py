"""Cross-cutting concerns: logging, errors and access control."""
