# content_history/application/versioning/restore_version.py
import time
from dataclasses import dataclass, asdict, field
from typing import Dict, Optional

from flask import current_app

from content_history.domain.exceptions import SaveIncomplete
from content_history.application.versioning.state_at_version import get_state_at_version
from content_history.application.versioning.save_changes import capture_live_state
from content_history.utils.live_state import overwrite_live_state
from content_history.utils.transaction import transactional
from content_history.utils.audit import log_action


@dataclass
class RestoreResult:
    page_name: str
    version_number: int
    elements_restored: int
    took_ms: float
    content: Dict[str, str] = field(default_factory=dict)
    recorded_version: Optional[int] = None

    def to_dict(self):
        return asdict(self)


def restore_to_version(
    *,
    page_name: str,
    version_number: int,
    record_as_new_version: bool = False,
    actor_id: Optional[str] = None,
) -> RestoreResult:
    """
    Overwrite live content with the state of a previous version.

    Responsibilities:
    - resolve the target state (snapshot or replay) before touching live content
    - optionally record the pre-restore content as a "restore" checkpoint
    - single-transaction overwrite of live content
    - audit logging
    """
    started = time.perf_counter()

    # Raises NotFoundError / ReconstructionError before anything is written
    state = get_state_at_version(page_name, version_number)

    recorded_version = None
    if record_as_new_version:
        number, created = capture_live_state(
            page_name,
            kind="restore",
            description=f"Before restore to version {version_number}",
            actor_id=actor_id,
        )
        if created:
            recorded_version = number

    try:
        with transactional():
            restored = overwrite_live_state(page_name, state)

            log_action(
                action="page.restore",
                entity_type="page",
                entity_id=page_name,
                actor_id=actor_id,
                payload={
                    "to_version": version_number,
                    "recorded_version": recorded_version,
                    "elements_restored": restored,
                },
            )
    except Exception as exc:
        if recorded_version is None:
            raise
        current_app.logger.error(
            "Checkpoint %s of %s recorded but restore to %s failed: %s",
            recorded_version, page_name, version_number, exc,
        )
        raise SaveIncomplete(
            f"Version {recorded_version} was recorded but restoring {page_name} "
            f"to version {version_number} failed; retry the restore",
            version_number=recorded_version,
        ) from exc

    took_ms = round((time.perf_counter() - started) * 1000, 2)

    current_app.logger.info(
        "Restored %s to version %s (%s elements, %sms)",
        page_name, version_number, restored, took_ms,
    )

    return RestoreResult(
        page_name=page_name,
        version_number=version_number,
        elements_restored=restored,
        took_ms=took_ms,
        content=state,
        recorded_version=recorded_version,
    )
