"""HTTP routers for auth and tasks."""
