"""Core utilities: clock, config, errors, logging, transition rules."""
