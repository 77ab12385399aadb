"""Queue proxy plumbing, HTTP clients, health and metrics shared by the ingester."""
