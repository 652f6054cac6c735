"""Services: token handling, offline simulation and request dispatch."""
