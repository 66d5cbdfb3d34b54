"""HTTP API exposing the custody vault."""
