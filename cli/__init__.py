"""Command line entry points for gtreex."""
