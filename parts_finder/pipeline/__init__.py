"""Part price resolution, caching and batch orchestration."""
