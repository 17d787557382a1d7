"""Modifier selection policies.

Every modifier group maps to one :class:`SelectionPolicy`. The policy is
checked once, when the chosen options for a product are turned into a list of
:class:`SelectedModifier` snapshots.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ModifierSelectionError
from .models import ModifierGroup, SelectedModifier


class SelectionPolicy(ABC):
    """How many options may be chosen from a modifier group."""

    @abstractmethod
    def validate(self, group_name: str, count: int) -> None:
        """Raise ModifierSelectionError if ``count`` choices are not allowed."""


@dataclass(frozen=True)
class SingleChoice(SelectionPolicy):
    required: bool = False

    def validate(self, group_name: str, count: int) -> None:
        if count > 1:
            raise ModifierSelectionError(
                f"Only one option may be selected for {group_name!r}, got {count}"
            )
        if self.required and count == 0:
            raise ModifierSelectionError(f"A selection is required for {group_name!r}")


@dataclass(frozen=True)
class MultiChoice(SelectionPolicy):
    minimum: int = 0
    maximum: Optional[int] = None

    def validate(self, group_name: str, count: int) -> None:
        if count < self.minimum:
            raise ModifierSelectionError(
                f"At least {self.minimum} option(s) must be selected for {group_name!r}, got {count}"
            )
        if self.maximum is not None and count > self.maximum:
            raise ModifierSelectionError(
                f"At most {self.maximum} option(s) may be selected for {group_name!r}, got {count}"
            )


def policy_for(group: ModifierGroup) -> SelectionPolicy:
    """Derive the selection policy of a modifier group."""
    if group.selection_mode == "single":
        return SingleChoice(required=group.required)
    minimum = group.min_selections or 0
    if group.required:
        minimum = max(minimum, 1)
    return MultiChoice(minimum=minimum, maximum=group.max_selections)


def build_selection(
    groups: Sequence[ModifierGroup],
    chosen: Mapping[str, Iterable[str]],
) -> Tuple[SelectedModifier, ...]:
    """Validate chosen option ids and snapshot them as selected modifiers.

    Args:
        groups: The product's modifier groups, in display order
        chosen: Option ids keyed by modifier group id

    Returns:
        Selected modifiers ordered by group, then by the order they were chosen

    Raises:
        ModifierSelectionError: On an unknown group or option, an unavailable
            option, a repeated option, or a policy violation
    """
    groups_by_id: Dict[str, ModifierGroup] = {group.id: group for group in groups}
    unknown = [group_id for group_id in chosen if group_id not in groups_by_id]
    if unknown:
        raise ModifierSelectionError(f"Unknown modifier group(s): {', '.join(sorted(unknown))}")

    selected: List[SelectedModifier] = []
    for group in groups:
        option_ids = list(chosen.get(group.id, ()))
        if len(set(option_ids)) != len(option_ids):
            raise ModifierSelectionError(f"Duplicate option selected for {group.name!r}")

        policy_for(group).validate(group.name, len(option_ids))

        for option_id in option_ids:
            option = group.find_option(option_id)
            if option is None:
                raise ModifierSelectionError(f"Unknown option {option_id!r} for {group.name!r}")
            if not option.available:
                raise ModifierSelectionError(f"Option {option.name!r} is not available")
            selected.append(SelectedModifier.from_option(group, option))
    return tuple(selected)


def validate_selection(groups: Sequence[ModifierGroup], selected: Iterable[SelectedModifier]) -> None:
    """Check an already-built list of selected modifiers against its groups."""
    chosen: Dict[str, List[str]] = {}
    for modifier in selected:
        chosen.setdefault(modifier.group_id, []).append(modifier.option_id)
    build_selection(groups, chosen)
