"""HTTP API exposing the Zoho Analytics nodes to a workflow host."""
