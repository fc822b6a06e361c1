"""Checkbox toggling on a rendered selection.

A browser user clicks checkboxes in the section an item is rendered in and
posts the whole form back. These helpers do the same for the command line:
they start from the values of the last rendered state and flip the boxes
of the requested items.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping

from featurectl.core.manager import FeaturesManager
from featurectl.core.reconciler import Reconciliation
from featurectl.models.config_item import ConfigItem
from featurectl.models.selection import FormSubmission, Section

logger = logging.getLogger(__name__)


class UnknownItemError(LookupError):
    """Raised when a toggled item is not rendered in the selection."""


def toggle_items(
    result: Reconciliation,
    manager: FeaturesManager,
    names: Iterable[str],
    checked: bool,
) -> FormSubmission:
    """Check or uncheck items in the section they are rendered in.

    Unchecking an added item also drops the detected values of its
    dependents that are not part of the previous export, so they return
    to sources unless something else still pulls them in.

    Args:
        result: Reconciliation of the last rendered state.
        manager: Manager of the same site, used to resolve names.
        names: Full config names to toggle.
        checked: New checkbox state.

    Returns:
        Submission ready to be reconciled.

    Raises:
        UnknownItemError: If an item is not rendered in the selection.
    """
    submission = result.state.as_submission()
    config = manager.get_config_collection()
    exported = set(result.package.config_orig)

    for name in names:
        component, key = manager.config_type_of(name)
        placement = result.state.placement(component, key)
        if placement is None:
            raise UnknownItemError(f"'{name}' is not selectable for {result.package.machine_name}")

        submission.set_value(component, placement.section, key, checked)
        logger.debug(
            "%s %s in %s", "Checked" if checked else "Unchecked", name, placement.section.value
        )

        if not checked and placement.section is Section.ADDED:
            for dependent in _dependents(name, config):
                if dependent in exported:
                    continue
                dep_component, dep_key = manager.config_type_of(dependent)
                dep_placement = result.state.placement(dep_component, dep_key)
                if dep_placement is not None and dep_placement.section is Section.DETECTED:
                    submission.drop_value(dep_component, Section.DETECTED, dep_key)

    return submission


def _dependents(name: str, config: Mapping[str, ConfigItem]) -> list[str]:
    """Collect the transitive dependents of an item."""
    found: list[str] = []
    seen = {name}
    queue = deque([name])
    while queue:
        item = config.get(queue.popleft())
        if item is None:
            continue
        for dependent in item.dependents:
            if dependent not in seen:
                seen.add(dependent)
                found.append(dependent)
                queue.append(dependent)
    return found

