"""Configuration constants.

Values here are NOT user-configurable: file-name conventions and the
vocabulary of the indexing pipeline. For tunable values, see models.py.
"""

# =============================================================================
# Config file locations
# =============================================================================

CONFIG_DIR_NAME = ".codegraph"
"""Per-repository config directory."""

CONFIG_FILE_NAME = "config.yaml"
"""Config file inside CONFIG_DIR_NAME (and the global config directory)."""

# =============================================================================
# Path filtering
# =============================================================================
# Directory segments that are never indexed. Compared lowercase against each
# path segment.

IGNORED_SEGMENTS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # Dependencies
        "node_modules",
        "bower_components",
        "jspm_packages",
        "vendor",
        "deps",
        # Python environments and caches
        "venv",
        "env",
        ".venv",
        ".env",
        "envs",
        "virtualenv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        # Build output
        "build",
        "dist",
        "out",
        "target",
        "bin",
        "obj",
        ".gradle",
        "_build",
        # IDE metadata
        ".vs",
        ".vscode",
        ".idea",
        ".eclipse",
        ".settings",
        # Temporary and logs
        "tmp",
        ".tmp",
        "temp",
        "logs",
        "log",
        # Coverage
        "coverage",
        ".coverage",
        "htmlcov",
        ".nyc_output",
        # Site generators and bundler caches
        "_site",
        ".docusaurus",
        ".cache",
        ".parcel-cache",
        ".next",
        ".nuxt",
    )
)

IGNORED_FILE_NAMES: frozenset[str] = frozenset((".ds_store", "thumbs.db"))
"""OS metadata files, compared lowercase."""

IGNORED_SUBSTRINGS: tuple[str, ...] = ("site-packages/", ".egg-info/")
"""Path fragments marking installed or packaged copies of code."""

ALLOWED_HIDDEN_DIRS: frozenset[str] = frozenset((".github",))
"""Hidden directories that are still indexed."""

CONFIG_FILE_NAMES: frozenset[str] = frozenset(
    (
        "package.json",
        "tsconfig.json",
        "tsconfig.base.json",
        "vite.config.ts",
        "vite.config.js",
        ".eslintrc",
        ".eslintrc.json",
        ".eslintrc.js",
        ".prettierrc",
        ".prettierrc.json",
        "docker-compose.yml",
        "docker-compose.yaml",
        "dockerfile",
        ".env",
        ".env.example",
        ".env.local",
        "pyproject.toml",
        "setup.py",
        "requirements.txt",
    )
)
"""Manifest/build files indexed as configuration (base name, lowercase)."""

# =============================================================================
# Language detection
# =============================================================================

EXTENSION_LANGUAGES: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".pyx": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}
"""Source extension -> grammar language name."""

LANGUAGE_FAMILIES: dict[str, str] = {
    "python": "python",
    "javascript": "javascript",
    "typescript": "javascript",
    "tsx": "javascript",
}
"""Grammar language -> extraction family (shared extractor and fallback)."""

# =============================================================================
# Generated/minified detection
# =============================================================================

GENERATED_NAME_MARKERS: tuple[str, ...] = (".min.", ".bundle.", "-bundle.", ".chunk.")
"""File-name fragments produced by bundlers and minifiers."""

GENERATED_PREAMBLES: tuple[str, ...] = (
    "webpackBootstrap",
    "__webpack_require__",
    "/*! For license information",
    "(function(modules)",
)
"""Bundler output markers searched for near the top of a file."""

GENERATED_PREAMBLE_WINDOW = 512
"""Characters scanned for GENERATED_PREAMBLES."""
