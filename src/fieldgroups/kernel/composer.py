from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .errors import FieldConflict, MissingRegistration, NotFound
from .schema import RecordDefinition, RecordField, decode_definition
from .store import StateStore

logger = logging.getLogger(__name__)


class Composer:
    """
    Appends previously registered field groups to a target definition.

    Local fields always win: a reused field whose name the target already
    declares is dropped. Reused groups are not deduplicated against each other
    unless ``strict`` is set, in which case the second supplier of a name
    raises FieldConflict.
    """

    def __init__(self, store: StateStore, strict: bool = False) -> None:
        self._store = store
        self.strict = strict

    def resolve(self, key: str) -> RecordDefinition:
        """Read and decode the definition registered under ``key``."""
        try:
            text = self._store.read(key)
        except NotFound:
            raise MissingRegistration(key) from None
        return decode_definition(key, text)

    def compose(
        self, target: RecordDefinition, reuse_names: Sequence[str]
    ) -> RecordDefinition:
        """
        Return a copy of ``target`` with the fields of every group in
        ``reuse_names`` appended, in order.

        All groups are resolved before anything is appended, so a failure
        leaves no partial result. ``target`` itself is never modified.
        """
        local_names = set(target.field_names())
        appended: List[RecordField] = []
        supplied_by: Dict[str, str] = {}

        for key in reuse_names:
            group = self.resolve(key)
            kept = [f for f in group.fields if f.name not in local_names]

            if self.strict:
                for f in kept:
                    if f.name in supplied_by:
                        raise FieldConflict(key, f.name, supplied_by[f.name])
                    supplied_by[f.name] = key

            logger.debug(
                "%s: reusing %d of %d fields from %r",
                target.name, len(kept), len(group.fields), key,
            )
            appended.extend(kept)

        return target.with_fields(appended)
