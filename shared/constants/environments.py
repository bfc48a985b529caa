from enum import Enum


class Environment(str, Enum):
    """Deployment environments the simulator is run in."""

    PRODUCTION = "production"
    DEMO = "demo"
    TESTING = "testing"
    DEVELOPMENT = "development"

    @classmethod
    def is_testing(cls, env: str) -> bool:
        """Check if environment is testing."""
        return env.lower() == cls.TESTING.value

    @classmethod
    def exposes_metrics(cls, env: str) -> bool:
        """Metrics endpoint is served everywhere except unit-test runs."""
        return not cls.is_testing(env)
