"""
Artifact writer — render selection results into the publish bundle.

Everything is written into a staging directory under the workspace and
only renamed to ``artifacts/<run_id>`` once complete.  The upload step
only ever sees a finished ``PublishArtifact``; a failure half-way
leaves nothing behind but a removed staging directory.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path

from mirrorpub.core.errors import ArtifactError
from mirrorpub.core.models.run import generate_run_id
from mirrorpub.core.models.selection import PublishArtifact, SelectionResult

logger = logging.getLogger(__name__)

ARTIFACTS_DIR = "artifacts"


def render_mirror_list(result: SelectionResult) -> str:
    """One URL per line; an empty selection renders as an empty file."""
    return "".join(f"{url}\n" for url in result.urls)


def _copy_passthrough(source: Path, staging: Path) -> list[str]:
    copied: list[str] = []
    for item in sorted(source.rglob("*")):
        if not item.is_file():
            continue
        rel = item.relative_to(source)
        dest = staging / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, dest)
        copied.append(rel.as_posix())
    return copied


class ArtifactWriter:
    """Stages and seals publish artifacts inside a workspace directory.

    Args:
        workspace: Root of the working area (e.g. ``.publish``).
        outputs: Region path → output file name.
        passthrough: Optional directory of static files to publish unchanged.
        keep: How many sealed artifacts to keep around.
    """

    def __init__(
        self,
        workspace: Path,
        outputs: Mapping[str, str],
        passthrough: Path | None = None,
        keep: int = 3,
    ) -> None:
        self.workspace = workspace
        self.outputs = dict(outputs)
        self.passthrough = passthrough
        self.keep = keep

    @property
    def artifacts_dir(self) -> Path:
        return self.workspace / ARTIFACTS_DIR

    def write(
        self,
        results: Iterable[SelectionResult],
        run_id: str | None = None,
    ) -> PublishArtifact:
        """Render every result plus passthrough content into a sealed artifact.

        The artifact is sealed as ``artifacts/<run_id>`` (a fresh id if none).

        Raises:
            ArtifactError: staging failed; nothing is left behind.
        """
        results = list(results)
        run_id = run_id or generate_run_id()
        try:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(dir=self.workspace, prefix=".staging-"))
        except OSError as e:
            raise ArtifactError(f"Cannot create staging directory in {self.workspace}: {e}") from e

        try:
            passthrough: list[str] = []
            if self.passthrough is not None:
                if not self.passthrough.is_dir():
                    raise ArtifactError(f"Passthrough directory not found: {self.passthrough}")
                passthrough = _copy_passthrough(self.passthrough, staging)

            generated: dict[str, str] = {}
            for result in results:
                region = str(result.region)
                name = self.outputs.get(region)
                if name is None:
                    raise ArtifactError(f"No output file configured for region '{region}'")
                if name in passthrough:
                    logger.warning("Generated '%s' replaces the passthrough file of that name", name)
                    passthrough.remove(name)
                (staging / name).write_text(render_mirror_list(result), encoding="utf-8")
                generated[name] = region

            sealed = self.artifacts_dir / run_id
            if sealed.exists():
                raise ArtifactError(f"Artifact already exists: {sealed}")
            staging.chmod(0o755)
            staging.rename(sealed)
        except ArtifactError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise ArtifactError(f"Cannot write artifact: {e}") from e

        logger.info(
            "Sealed artifact %s (%d generated, %d passthrough)",
            run_id, len(generated), len(passthrough),
        )
        self.prune()
        return PublishArtifact(path=sealed, generated=generated, passthrough=tuple(passthrough))

    def prune(self) -> list[str]:
        """Remove all but the newest ``keep`` artifacts.  Returns removed names."""
        if not self.artifacts_dir.is_dir():
            return []
        sealed = sorted(
            (p for p in self.artifacts_dir.iterdir() if p.is_dir()),
            key=lambda p: (p.stat().st_mtime_ns, p.name),
        )
        stale = sealed[: max(len(sealed) - self.keep, 0)]
        for path in stale:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Pruned old artifact %s", path.name)
        return [p.name for p in stale]
