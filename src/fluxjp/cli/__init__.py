"""Command-line interface for FluxJP."""
