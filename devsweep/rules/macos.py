"""
macOS cleanup rules: Homebrew, Xcode and user Library caches.
"""

from devsweep.models import Category, CleanupRule, RiskLevel

DARWIN = frozenset({"darwin"})

# Subdirectories of ~/Library/Caches owned by a more specific rule or by the OS.
USER_CACHE_EXCLUDES = (
    "com.apple.*",
    "CloudKit",
    "FamilyCircle",
    "Homebrew",
    "CocoaPods",
    "pip",
    "uv",
    "pypoetry",
    "yarn",
    "Yarn",
    "node-gyp",
    "go-build",
)

BREW_RULES = (
    CleanupRule(
        name="Homebrew Cache",
        category=Category.BREW,
        patterns=("{cache}/Homebrew",),
        risk=RiskLevel.LOW,
        description="Downloaded bottles and source archives",
    ),
)

XCODE_RULES = (
    CleanupRule(
        name="Xcode DerivedData",
        category=Category.XCODE,
        patterns=("{library}/Developer/Xcode/DerivedData/*",),
        risk=RiskLevel.LOW,
        description="Intermediate build products and indexes",
        platforms=DARWIN,
    ),
    CleanupRule(
        name="Xcode Archives",
        category=Category.XCODE,
        patterns=("{library}/Developer/Xcode/Archives/*",),
        risk=RiskLevel.MEDIUM,
        description="Archived app builds (needed to symbolicate old crash logs)",
        platforms=DARWIN,
    ),
    CleanupRule(
        name="Xcode Device Support",
        category=Category.XCODE,
        patterns=(
            "{library}/Developer/Xcode/iOS DeviceSupport/*",
            "{library}/Developer/Xcode/watchOS DeviceSupport/*",
        ),
        risk=RiskLevel.MEDIUM,
        description="Debug symbols copied from connected devices",
        platforms=DARWIN,
    ),
    CleanupRule(
        name="CocoaPods Cache",
        category=Category.XCODE,
        patterns=("{cache}/CocoaPods",),
        risk=RiskLevel.LOW,
        description="CocoaPods spec repo and pod download cache",
        platforms=DARWIN,
    ),
    CleanupRule(
        name="iOS Simulator Devices",
        category=Category.XCODE,
        patterns=("{library}/Developer/CoreSimulator/Devices",),
        risk=RiskLevel.HIGH,
        description="Simulator devices including installed apps and their data",
        platforms=DARWIN,
    ),
)

SYSTEM_RULES = (
    CleanupRule(
        name="macOS User Caches",
        category=Category.SYSTEM,
        patterns=("{cache}/*",),
        risk=RiskLevel.LOW,
        description="Per-application caches in ~/Library/Caches",
        platforms=DARWIN,
        min_size=1024 * 1024,
        exclude_names=USER_CACHE_EXCLUDES,
    ),
    CleanupRule(
        name="macOS User Logs",
        category=Category.SYSTEM,
        patterns=("{library}/Logs",),
        risk=RiskLevel.LOW,
        description="Application logs in ~/Library/Logs",
        platforms=DARWIN,
    ),
    CleanupRule(
        name="macOS Trash",
        category=Category.SYSTEM,
        patterns=("{home}/.Trash/*",),
        risk=RiskLevel.MEDIUM,
        description="Items already in the Trash",
        platforms=DARWIN,
        always_permanent=True,
    ),
)

RULES = BREW_RULES + XCODE_RULES + SYSTEM_RULES
