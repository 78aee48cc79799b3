# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "formfill"

MANIFESTS: Final[str] = f"{ROOT}:manifests"  # one snapshot per identity
IDENTITIES: Final[str] = f"{ROOT}:identity"  # one identity per local profile
