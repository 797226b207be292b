"""Application services: sync orchestration, search, catalogue lookups."""
