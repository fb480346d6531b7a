"""Route and service decorators."""
