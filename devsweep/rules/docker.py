"""
Docker cleanup rules.

Docker keeps most of its storage behind the daemon; only the on-disk
locations owned by the current user are cataloged here.
"""

from devsweep.models import Category, CleanupRule, RiskLevel

RULES = (
    CleanupRule(
        name="Docker Desktop Logs",
        category=Category.DOCKER,
        patterns=("{library}/Containers/com.docker.docker/Data/log",),
        risk=RiskLevel.LOW,
        description="Docker Desktop VM and backend logs",
        platforms=frozenset({"darwin"}),
    ),
    CleanupRule(
        name="Docker Buildx Cache",
        category=Category.DOCKER,
        patterns=("{home}/.docker/buildx/cache",),
        risk=RiskLevel.MEDIUM,
        description="Local build cache exported by docker buildx",
    ),
    CleanupRule(
        name="Docker Desktop Disk Image",
        category=Category.DOCKER,
        patterns=("{library}/Containers/com.docker.docker/Data/vms/0/data/Docker.raw",),
        risk=RiskLevel.HIGH,
        description="All images, containers and volumes of Docker Desktop",
        platforms=frozenset({"darwin"}),
    ),
    CleanupRule(
        name="Rootless Docker Data",
        category=Category.DOCKER,
        patterns=("{data}/docker",),
        risk=RiskLevel.HIGH,
        description="All images, containers and volumes of a rootless Docker engine",
        platforms=frozenset({"linux"}),
    ),
)
