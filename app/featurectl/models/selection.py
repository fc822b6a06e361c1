"""Selection state and form submission models.

The selection state is the four-way partition of every selectable config
item into sources, included, detected and added sections. The form
submission carries the checkbox values a client posted back, keyed by
encoded config keys.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from featurectl.core.encoding import decode_key, encode_key


class Section(str, Enum):
    """Section of the component list an item is rendered in.

    Attributes:
        SOURCES: Available to be added to the package.
        INCLUDED: Previously exported to the package.
        DETECTED: Pulled in because a selected item depends on it.
        ADDED: Newly added to the package.
    """

    SOURCES = "sources"
    INCLUDED = "included"
    DETECTED = "detected"
    ADDED = "added"


# Sections holding items that are part of the package
EXPORT_SECTIONS = (Section.INCLUDED, Section.DETECTED, Section.ADDED)


@dataclass(frozen=True, slots=True)
class Placement:
    """Where a single item landed after reconciliation.

    Attributes:
        section: Section the item is rendered in.
        checked: Whether its checkbox is checked.
    """

    section: Section
    checked: bool


@dataclass(slots=True)
class ComponentSelection:
    """Selection state of all items of one component type.

    Attributes:
        component: Config type machine name.
        label: Config type label.
        options: Display label per key, per section.
        selected: Checkbox state per key, per section.
    """

    component: str
    label: str
    options: dict[Section, dict[str, str]] = field(
        default_factory=lambda: {section: {} for section in Section}
    )
    selected: dict[Section, dict[str, bool]] = field(
        default_factory=lambda: {section: {} for section in Section}
    )

    def place(self, section: Section, key: str, label: str, checked: bool) -> None:
        """Render an item in a section."""
        self.options[section][key] = label
        self.selected[section][key] = checked

    def placement(self, key: str) -> Placement | None:
        """Get the section and checkbox state of an item."""
        for section in Section:
            if key in self.options[section]:
                return Placement(section, self.selected[section][key])
        return None

    def keys(self) -> Iterator[str]:
        """Iterate over every rendered key."""
        for section in Section:
            yield from self.options[section]

    @property
    def source_count(self) -> int:
        """Number of items still available in the sources section."""
        return len(self.options[Section.SOURCES])

    @property
    def export_count(self) -> int:
        """Number of items rendered in included, detected or added."""
        return sum(len(self.options[section]) for section in EXPORT_SECTIONS)


@dataclass(slots=True)
class SelectionState:
    """Four-way partition of every selectable item, per component type."""

    components: dict[str, ComponentSelection] = field(default_factory=dict)

    def __iter__(self) -> Iterator[ComponentSelection]:
        return iter(self.components.values())

    def __contains__(self, component: object) -> bool:
        return component in self.components

    def __getitem__(self, component: str) -> ComponentSelection:
        return self.components[component]

    def placement(self, component: str, key: str) -> Placement | None:
        """Get the placement of an item, or None if it is not selectable."""
        selection = self.components.get(component)
        if selection is None:
            return None
        return selection.placement(key)

    def placements(self) -> dict[tuple[str, str], Placement]:
        """Map every (component, key) pair to its placement."""
        result: dict[tuple[str, str], Placement] = {}
        for selection in self.components.values():
            for section in Section:
                for key, checked in selection.selected[section].items():
                    result[(selection.component, key)] = Placement(section, checked)
        return result

    def as_submission(self) -> FormSubmission:
        """Build the form values a client would post back for this state.

        Every rendered checkbox is present, checked or not, under its
        encoded key.
        """
        values: dict[str, dict[str, dict[str, bool]]] = {}
        for selection in self.components.values():
            sections: dict[str, dict[str, bool]] = {}
            for section in Section:
                if selection.selected[section]:
                    sections[section.value] = {
                        encode_key(key): checked
                        for key, checked in selection.selected[section].items()
                    }
            values[selection.component] = sections
        return FormSubmission(values=values, submitted=True)


@dataclass(slots=True)
class FormSubmission:
    """Checkbox values posted back for the component list.

    Attributes:
        values: Checkbox state keyed by component, section and encoded key.
        submitted: False for the initial, non-submitted render.
    """

    values: dict[str, dict[str, dict[str, bool]]] = field(default_factory=dict)
    submitted: bool = False

    @classmethod
    def initial(cls) -> FormSubmission:
        """Create the empty submission of a first render."""
        return cls()

    def section_values(self, component: str, section: Section) -> dict[str, bool]:
        """Get the decoded checkbox values of one section."""
        raw = self.values.get(component, {}).get(section.value, {})
        return {decode_key(key): bool(value) for key, value in raw.items()}

    def has_section(self, component: str, section: Section) -> bool:
        """Check if any checkbox of a section was posted."""
        return bool(self.values.get(component, {}).get(section.value))

    def has_value(self, component: str, section: Section, key: str) -> bool:
        """Check if a checkbox was posted, whether checked or not."""
        return key in self.section_values(component, section)

    def is_checked(self, component: str, section: Section, key: str) -> bool:
        """Check if a checkbox was posted and checked."""
        return self.section_values(component, section).get(key, False)

    def checked(self, component: str, section: Section) -> list[str]:
        """Get the decoded keys of all checked checkboxes of a section."""
        return [key for key, value in self.section_values(component, section).items() if value]

    def set_value(self, component: str, section: Section, key: str, checked: bool) -> None:
        """Set a checkbox value, encoding the key."""
        sections = self.values.setdefault(component, {})
        sections.setdefault(section.value, {})[encode_key(key)] = checked

    def drop_value(self, component: str, section: Section, key: str) -> None:
        """Remove a checkbox value as if it had never been posted."""
        self.values.get(component, {}).get(section.value, {}).pop(encode_key(key), None)

    def copy(self) -> FormSubmission:
        """Create a deep copy of the submission."""
        return FormSubmission(
            values={
                component: {section: dict(keys) for section, keys in sections.items()}
                for component, sections in self.values.items()
            },
            submitted=self.submitted,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {"submitted": self.submitted, "values": self.copy().values}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FormSubmission:
        """Deserialize from dictionary.

        Unknown sections and non-mapping values are dropped.

        Args:
            data: Dictionary containing submission data.

        Returns:
            FormSubmission instance.
        """
        known = {section.value for section in Section}
        values: dict[str, dict[str, dict[str, bool]]] = {}
        raw_values = data.get("values", {})
        if isinstance(raw_values, Mapping):
            for component, sections in raw_values.items():
                if not isinstance(sections, Mapping):
                    continue
                values[str(component)] = {
                    str(section): {str(key): bool(value) for key, value in keys.items()}
                    for section, keys in sections.items()
                    if section in known and isinstance(keys, Mapping)
                }
        return cls(values=values, submitted=bool(data.get("submitted", True)))
