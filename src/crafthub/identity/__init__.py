"""Identity layer — record store, OAuth providers, and the identity resolver."""
