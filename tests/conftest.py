import json
from pathlib import Path

import pytest

from radflow_tokens.core.settings import WorkspaceSettings

TOKENS_CSS = """@import "tailwindcss";

/* Brand palette */
@theme inline {
  --color-sun-yellow: #FCE184;
  --color-sun: #FFAA00;
  --color-black: #0F0E0C;
  --color-warm-cloud: #FEF8E2;
  --color-neutral-gray: #888888;
  /* --color-ghost: #123456; */
  --font-sans: var(--font-geist-sans);
}

@theme {
  --color-surface-primary: var(--color-warm-cloud);
  --color-content-primary: var(--color-black);
  --color-edge-primary: var(--color-black);
  --radius-sm: 2px;
  --radius-md: 0.5rem;
  --shadow-card: 2px 2px 0 0 var(--color-black);
}

:root {
  --bg-color-sun: #000000;
}
"""

DARK_CSS = """.dark {
  --color-surface-primary: var(--color-black);
  --color-content-primary: var(--color-warm-cloud);
}
"""

TYPOGRAPHY_CSS = """@layer base {
  h1 {
    @apply font-joystix text-4xl font-bold leading-tight text-black uppercase;
  }

  p {
    @apply text-base leading-relaxed;
  }

  .prose h2 {
    @apply text-xl;
  }
}
"""

FONTS_CSS = """@import "tailwindcss";

@font-face {
  font-family: 'Mondwest';
  src: url('/fonts/Mondwest-Regular.woff2') format('woff2');
  font-weight: 400;
  font-style: normal;
  font-display: swap;
}

.font-mondwest {
  font-family: 'Mondwest', serif;
}
"""


def write_package(root: Path, theme_id: str, files=None, display_name=None) -> Path:
    package_dir = root / "packages" / f"theme-{theme_id}"
    package_dir.mkdir(parents=True, exist_ok=True)
    package = {
        "name": f"@radflow/theme-{theme_id}",
        "version": "1.0.0",
        "exports": {".": "./index.css", "./tokens": "./tokens.css"},
        "radflow": {"displayName": display_name or theme_id.title(), "fonts": {"heading": "Mondwest"}},
    }
    (package_dir / "package.json").write_text(json.dumps(package), encoding="utf-8")
    for name, content in (files or {}).items():
        (package_dir / name).write_text(content, encoding="utf-8")
    return package_dir


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace whose globals.css imports theme-rad-os; theme-phase is inactive."""
    app = tmp_path / "app"
    app.mkdir()
    (app / "globals.css").write_text(
        '@import "tailwindcss";\n@import "@radflow/theme-rad-os";\n\nbody { margin: 0; }\n',
        encoding="utf-8",
    )
    write_package(
        tmp_path,
        "rad-os",
        {
            "tokens.css": TOKENS_CSS,
            "dark.css": DARK_CSS,
            "typography.css": TYPOGRAPHY_CSS,
            "fonts.css": FONTS_CSS,
        },
        display_name="RadOS",
    )
    write_package(tmp_path, "phase", {"tokens.css": TOKENS_CSS})
    return tmp_path


@pytest.fixture
def settings(workspace: Path) -> WorkspaceSettings:
    return WorkspaceSettings(root=workspace)
