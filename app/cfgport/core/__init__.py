"""Core infrastructure: platform context, paths, configuration, theme."""
