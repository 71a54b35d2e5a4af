"""Centralised application settings loaded from environment / .env file."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Routing provider (OSRM)
    osrm_base_url: str = "https://router.project-osrm.org"
    routing_profile: str = "driving"

    # Facility directory (Overpass API)
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    overpass_timeout_seconds: int = 25  # server-side query timeout

    http_timeout_seconds: float = 10.0

    # Coordination engine
    hospital_radius_km: float = 2.0
    routed_hospital_count: int = 5  # top-K facilities sent to the router
    stale_timeout_ms: int = 30_000
    sweep_interval_seconds: float = 5.0
    spanning_strategy: str = "greedy"  # "greedy" | "kruskal"
    max_response_time_minutes: int = 15

    # Route memoization (Redis)
    redis_url: str = "redis://localhost:6379/0"
    route_cache_enabled: bool = False
    route_cache_ttl_seconds: int = 300
    h3_resolution: int = 8  # ~0.74 km² hexagons

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
