import sys
from pathlib import Path


def test_imports():
    # Ensure the repository is importable for basic sanity
    src = Path(__file__).resolve().parents[1] / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))
    import singularity_demo  # noqa: F401
    import singularity_vaults  # noqa: F401
