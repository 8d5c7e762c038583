"""
Cross-platform developer tool cleanup rules.
"""

from devsweep.models import Category, CleanupRule, RiskLevel

PROJECT_DIRS = ("Projects", "projects", "Code", "code", "Development", "dev", "src")

NODEJS_RULES = (
    CleanupRule(
        name="npm Cache",
        category=Category.NODEJS,
        patterns=("{home}/.npm/_cacache", "{home}/.npm/_logs"),
        risk=RiskLevel.LOW,
        description="npm package download cache and logs",
    ),
    CleanupRule(
        name="Yarn Cache",
        category=Category.NODEJS,
        patterns=("{home}/.yarn/cache", "{cache}/yarn"),
        risk=RiskLevel.LOW,
        description="Yarn package cache",
    ),
    CleanupRule(
        name="pnpm Store",
        category=Category.NODEJS,
        patterns=("{home}/.pnpm-store", "{data}/pnpm/store"),
        risk=RiskLevel.MEDIUM,
        description="pnpm content-addressable store (shared by linked projects)",
    ),
    CleanupRule(
        name="node-gyp Headers",
        category=Category.NODEJS,
        patterns=("{cache}/node-gyp",),
        risk=RiskLevel.LOW,
        description="Node.js headers downloaded by node-gyp",
    ),
)

PYTHON_RULES = (
    CleanupRule(
        name="pip Cache",
        category=Category.PYTHON,
        patterns=("{cache}/pip",),
        risk=RiskLevel.LOW,
        description="pip wheel and HTTP cache",
    ),
    CleanupRule(
        name="uv Cache",
        category=Category.PYTHON,
        patterns=("{cache}/uv",),
        risk=RiskLevel.LOW,
        description="uv package cache",
    ),
    CleanupRule(
        name="Poetry Cache",
        category=Category.PYTHON,
        patterns=("{cache}/pypoetry/cache", "{cache}/pypoetry/artifacts"),
        risk=RiskLevel.LOW,
        description="Poetry package and artifact cache",
    ),
    CleanupRule(
        name="Conda Package Cache",
        category=Category.PYTHON,
        patterns=(
            "{home}/anaconda3/pkgs",
            "{home}/miniconda3/pkgs",
            "{home}/miniforge3/pkgs",
            "{home}/.conda/pkgs",
        ),
        risk=RiskLevel.LOW,
        description="Conda downloaded package tarballs",
    ),
)

RUST_RULES = (
    CleanupRule(
        name="Cargo Registry Cache",
        category=Category.RUST,
        patterns=("{home}/.cargo/registry/cache/*",),
        risk=RiskLevel.LOW,
        description="Downloaded crate archives (re-downloaded on demand)",
    ),
    CleanupRule(
        name="Cargo Git Checkouts",
        category=Category.RUST,
        patterns=("{home}/.cargo/git/checkouts/*",),
        risk=RiskLevel.LOW,
        description="Checked out git dependencies",
    ),
    CleanupRule(
        name="Cargo Target Directories",
        category=Category.RUST,
        patterns=tuple(f"{{home}}/{d}/*/target" for d in PROJECT_DIRS),
        risk=RiskLevel.LOW,
        description="Build output of Rust projects (rebuilt by cargo build)",
        marker="Cargo.toml",
    ),
)

GO_RULES = (
    CleanupRule(
        name="Go Build and Module Cache",
        category=Category.GO,
        patterns=("{home}/go/pkg/mod/cache", "{cache}/go-build"),
        risk=RiskLevel.LOW,
        description="Go module download cache and build cache",
    ),
)

JAVA_RULES = (
    CleanupRule(
        name="Gradle Cache",
        category=Category.JAVA,
        patterns=("{home}/.gradle/caches", "{home}/.gradle/wrapper/dists"),
        risk=RiskLevel.LOW,
        description="Gradle dependency cache and wrapper distributions",
    ),
    CleanupRule(
        name="Maven Repository",
        category=Category.JAVA,
        patterns=("{home}/.m2/repository",),
        risk=RiskLevel.MEDIUM,
        description="Local Maven repository (may hold locally installed artifacts)",
    ),
)

ANDROID_RULES = (
    CleanupRule(
        name="Android Build Cache",
        category=Category.ANDROID,
        patterns=(
            "{home}/.android/cache",
            "{home}/.android/build-cache",
            "{library}/Android/sdk/.downloadIntermediates",
        ),
        risk=RiskLevel.LOW,
        description="Android SDK and Gradle plugin caches",
    ),
)

RULES = NODEJS_RULES + PYTHON_RULES + RUST_RULES + GO_RULES + JAVA_RULES + ANDROID_RULES
