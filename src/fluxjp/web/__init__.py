"""JSON API for FluxJP."""
