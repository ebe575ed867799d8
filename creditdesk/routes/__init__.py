"""HTTP routers that are not part of billing."""
