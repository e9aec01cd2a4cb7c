"""
Change tracking between a form's initial and current values using DeepDiff.
Used to summarise a draft before it is saved or submitted.
"""

from typing import Dict, Any, Optional, Set
from deepdiff import DeepDiff
import logging

logger = logging.getLogger(__name__)


def calculate_changes(initial: Dict[str, Any], current: Dict[str, Any],
                      fields: Optional[Set[str]] = None) -> Dict[str, Dict[str, Any]]:
    """
    Calculate per-field changes between two value mappings.

    Args:
        initial: Field id -> initial value
        current: Field id -> current value
        fields: Optional set of field ids to restrict the comparison to

    Returns:
        Field id -> {'old': value, 'new': value}; fields missing on one side
        are reported with None on that side
    """
    if fields is not None:
        initial = {k: v for k, v in initial.items() if k in fields}
        current = {k: v for k, v in current.items() if k in fields}

    diff = DeepDiff(initial, current, view='tree')
    changes: Dict[str, Dict[str, Any]] = {}

    for level in diff.get('values_changed', []):
        changes[_field_id(level)] = {'old': level.t1, 'new': level.t2}
    for level in diff.get('type_changes', []):
        changes[_field_id(level)] = {'old': level.t1, 'new': level.t2}
    for level in diff.get('dictionary_item_added', []):
        changes[_field_id(level, use_t2=True)] = {'old': None, 'new': level.t2}
    for level in diff.get('dictionary_item_removed', []):
        changes[_field_id(level)] = {'old': level.t1, 'new': None}

    logger.debug(f"Calculated {len(changes)} field change(s)")
    return changes


def get_change_summary(changes: Dict[str, Dict[str, Any]]) -> Dict[str, int]:
    """
    Count changes by kind.

    Returns:
        Dictionary with 'modified', 'cleared', 'filled' and 'total' counts
    """
    summary = {'modified': 0, 'cleared': 0, 'filled': 0, 'total': len(changes)}
    for change in changes.values():
        if not change['new']:
            summary['cleared'] += 1
        elif not change['old']:
            summary['filled'] += 1
        else:
            summary['modified'] += 1
    return summary


def _field_id(level, use_t2: bool = False) -> str:
    # Added items only have a path on the t2 side
    return str(level.path(output_format='list', use_t2=use_t2)[0])
