"""
Linux cleanup rules: package manager caches, sandboxed app caches, logs.
"""

from devsweep.models import Category, CleanupRule, RiskLevel

LINUX = frozenset({"linux"})

# Entries of ~/.cache owned by a more specific rule.
USER_CACHE_EXCLUDES = (
    "pip",
    "uv",
    "pypoetry",
    "yarn",
    "node-gyp",
    "go-build",
    "Homebrew",
)

PACKAGE_RULES = (
    CleanupRule(
        name="APT Package Cache",
        category=Category.LINUX_PACKAGES,
        patterns=("{var}/cache/apt/archives/*.deb",),
        risk=RiskLevel.LOW,
        description="Downloaded package files from APT (Debian/Ubuntu)",
        platforms=LINUX,
    ),
    CleanupRule(
        name="DNF/YUM Package Cache",
        category=Category.LINUX_PACKAGES,
        patterns=("{var}/cache/dnf", "{var}/cache/yum"),
        risk=RiskLevel.LOW,
        description="Downloaded package metadata and RPMs (Fedora/RHEL)",
        platforms=LINUX,
    ),
    CleanupRule(
        name="Pacman Package Cache",
        category=Category.LINUX_PACKAGES,
        patterns=("{var}/cache/pacman/pkg/*",),
        risk=RiskLevel.MEDIUM,
        description="Cached packages (needed to downgrade on Arch Linux)",
        platforms=LINUX,
    ),
    CleanupRule(
        name="Snap App Caches",
        category=Category.LINUX_PACKAGES,
        patterns=("{home}/snap/*/common/.cache",),
        risk=RiskLevel.LOW,
        description="Per-snap cache directories",
        platforms=LINUX,
    ),
    CleanupRule(
        name="Flatpak App Caches",
        category=Category.LINUX_PACKAGES,
        patterns=("{home}/.var/app/*/cache",),
        risk=RiskLevel.LOW,
        description="Per-application Flatpak cache directories",
        platforms=LINUX,
    ),
)

SYSTEM_RULES = (
    CleanupRule(
        name="Systemd Journal Logs",
        category=Category.SYSTEM,
        patterns=("{var}/log/journal",),
        risk=RiskLevel.MEDIUM,
        description="Systemd journal files (journalctl --vacuum-size is gentler)",
        platforms=LINUX,
    ),
    CleanupRule(
        name="User Cache Directory",
        category=Category.SYSTEM,
        patterns=("{cache}/*",),
        risk=RiskLevel.LOW,
        description="Application caches in ~/.cache",
        platforms=LINUX,
        min_size=1024 * 1024,
        exclude_names=USER_CACHE_EXCLUDES,
    ),
    CleanupRule(
        name="Desktop Trash",
        category=Category.SYSTEM,
        patterns=("{data}/Trash/files/*",),
        risk=RiskLevel.MEDIUM,
        description="Items already in the desktop Trash",
        platforms=LINUX,
        always_permanent=True,
        companions=("../info/{name}.trashinfo",),
    ),
)

RULES = PACKAGE_RULES + SYSTEM_RULES
