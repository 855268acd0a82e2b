"""
In-place manifest endpoint rewriting.

The frontend manifest carries the gateway address as literal text. Each run
replaces the previous value with the newly discovered one. The previous
value is taken from a small state file written after every successful
rewrite, falling back to the configured placeholder marker, so repeated
runs keep advancing the manifest even as the address changes.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import structlog

logger = structlog.get_logger()


def _write_atomic(path: Path, content: str) -> None:
    """Write via a sibling temp file so readers never see a half-written file."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if path.exists():
            os.chmod(tmp, path.stat().st_mode & 0o777)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


def rewrite_endpoint(path: Path, old: str, new: str) -> int:
    """
    Replace every occurrence of ``old`` with ``new`` in a file, in place.

    Returns the number of replacements. A file without ``old`` is left
    untouched (not even rewritten).
    """
    if not old:
        raise ValueError("old endpoint reference must not be empty")
    content = path.read_text(encoding="utf-8")
    count = content.count(old)
    if count == 0 or old == new:
        return count
    _write_atomic(path, content.replace(old, new))
    return count


@dataclass
class EndpointState:
    """Last endpoint value written into the frontend manifest."""

    endpoint: str | None = None
    manifest: str | None = None
    updated_at: str | None = None


def load_state(path: Path) -> EndpointState:
    if not path.exists():
        return EndpointState()
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("endpoint_state_unreadable", path=str(path), reason=str(e))
        return EndpointState()
    if not isinstance(data, dict):
        logger.warning("endpoint_state_unreadable", path=str(path), reason="not a JSON object")
        return EndpointState()
    return EndpointState(
        endpoint=data.get("endpoint"),
        manifest=data.get("manifest"),
        updated_at=data.get("updated_at"),
    )


def save_state(state: EndpointState, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "endpoint": state.endpoint,
        "manifest": state.manifest,
        "updated_at": state.updated_at,
    }
    _write_atomic(path, json.dumps(payload, indent=2, sort_keys=True) + "\n")


@dataclass(frozen=True)
class RewriteResult:
    manifest: Path
    old: str | None
    new: str
    replacements: int

    @property
    def rewritten(self) -> bool:
        return self.replacements > 0


class ManifestTemplater:
    """Advances one manifest's endpoint reference from run to run."""

    def __init__(self, manifest: Path, placeholder: str, state_file: Path):
        self.manifest = manifest
        self.placeholder = placeholder
        self.state_file = state_file

    def prior_candidates(self) -> list[str]:
        """Values that may currently sit in the manifest, most likely first."""
        state = load_state(self.state_file)
        candidates = []
        if state.endpoint:
            candidates.append(state.endpoint)
        if self.placeholder and self.placeholder not in candidates:
            candidates.append(self.placeholder)
        return candidates

    def rewire(self, new: str, old: str | None = None) -> RewriteResult:
        """
        Replace the prior endpoint reference with ``new``.

        When ``old`` is not given, the recorded state value is tried first
        and then the placeholder marker. The state file is updated only when
        a replacement actually happened.
        """
        candidates = [old] if old else self.prior_candidates()
        for candidate in candidates:
            count = rewrite_endpoint(self.manifest, candidate, new)
            if count:
                save_state(
                    EndpointState(
                        endpoint=new,
                        manifest=str(self.manifest),
                        updated_at=datetime.now(timezone.utc).isoformat(),
                    ),
                    self.state_file,
                )
                logger.info(
                    "manifest_rewired",
                    manifest=str(self.manifest),
                    old=candidate,
                    new=new,
                    replacements=count,
                )
                return RewriteResult(self.manifest, candidate, new, count)

        logger.warning(
            "manifest_reference_not_found",
            manifest=str(self.manifest),
            candidates=candidates,
            reason="no known prior endpoint value present in manifest",
        )
        return RewriteResult(self.manifest, None, new, 0)
