"""Tag propagator: writes a tag onto every target of a RelationSet."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from apitag_core.code_model.base import CodeModel
from apitag_core.models.types import AuditAction, AuditEntry, PropagationResult, RelationSet
from apitag_core.tagging.codec import TagCodec

logger = logging.getLogger(__name__)

DEFAULT_LABEL = "Sync API message tag"
SAME_TAG_DETAIL = "already has same tag"


def render_audit(audit: Iterable[AuditEntry]) -> str:
    """One line per audit entry, e.g. ``- AccountService (added)``."""
    return "\n".join(entry.render() for entry in audit)


class TagPropagator:
    """Idempotent tag writer.

    All writes of one ``propagate`` call share a single write transaction, so
    they undo together. A failing symbol is recorded and the batch goes on.
    """

    def __init__(self, model: CodeModel, codec: Optional[TagCodec] = None):
        self.model = model
        self.codec = codec or TagCodec()

    def propagate(
        self,
        targets: RelationSet,
        tag: str,
        label: str = DEFAULT_LABEL,
    ) -> PropagationResult:
        """Write ``tag`` to each target, types first then grouped methods.

        Args:
            targets: Resolved relation set
            tag: Tag text (e.g. ``ACC-Q-001 Get account``)
            label: History label of the write transaction

        Returns:
            PropagationResult with the successful write count and audit trail
        """
        result = PropagationResult()
        with self.model.write_transaction(label):
            for target in targets.iter_targets():
                entry = self._apply(target, tag)
                result.audit.append(entry)
                if entry.action in (AuditAction.ADDED, AuditAction.UPDATED):
                    result.count += 1

        logger.info(
            f"Propagated tag '{tag}' to {result.count} symbol(s)",
            extra={
                "tag": tag,
                "count": result.count,
                "failures": len(result.failures),
                "targets": len(targets),
            },
        )
        return result

    def _apply(self, target, tag: str) -> AuditEntry:
        description = target.describe()
        try:
            current = self.model.get_symbol(target.fqn)
            if current is None:
                return AuditEntry(description, AuditAction.FAILED, "symbol no longer exists", target.fqn)

            documentation = self.model.get_documentation(current)
            if self.codec.same_tag(self.codec.extract(documentation), tag):
                return AuditEntry(description, AuditAction.SKIPPED, SAME_TAG_DETAIL, target.fqn)

            new_doc = self.codec.format(tag)
            if documentation:
                self.model.set_documentation(current, new_doc)
                return AuditEntry(description, AuditAction.UPDATED, fqn=target.fqn)

            self.model.insert_documentation(current, new_doc)
            return AuditEntry(description, AuditAction.ADDED, fqn=target.fqn)
        except Exception as e:
            logger.error(
                f"Failed to write tag to {description}: {e}",
                extra={"fqn": target.fqn, "tag": tag},
            )
            return AuditEntry(description, AuditAction.FAILED, str(e), target.fqn)
