"""HTTP surface for the bay capacity engine."""
