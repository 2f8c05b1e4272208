from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalog_bootstrap.domain.status import AreaUpdate


class UpdateRecorder:
    """Collects the ``AreaUpdate`` reports a reconciler sends."""

    def __init__(self) -> None:
        self.updates: list[AreaUpdate] = []

    def __call__(self, update: AreaUpdate) -> None:
        self.updates.append(update)

    @property
    def progress(self) -> list[float]:
        return [update.progress for update in self.updates if update.progress is not None]

    @property
    def messages(self) -> list[str]:
        return [update.message for update in self.updates if update.message]

    @property
    def warnings(self) -> list[str]:
        return [update.warning.message for update in self.updates if update.warning is not None]
