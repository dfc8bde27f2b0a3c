"""Application – the cache facade and its use-case helpers (framework-agnostic)."""
