"""Stand-in for the upstream stock exchange API, for local runs and demos."""
