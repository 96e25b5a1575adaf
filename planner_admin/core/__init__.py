"""Settings and explicit wiring."""
