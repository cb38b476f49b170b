"""HTTP types — Request, Response, and Headers decoded from gateway events."""
