"""Output renderers — Rich terminal, JSON, YAML."""
