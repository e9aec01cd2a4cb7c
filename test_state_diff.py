"""
Unit tests for state_diff module.
"""

from dynamic_forms.state_diff import calculate_changes, get_change_summary


class TestCalculateChanges:
    """Test cases for calculate_changes function."""

    def test_no_changes(self):
        values = {'name': 'Ada', 'email': ''}

        changes = calculate_changes(values, dict(values))

        assert changes == {}

    def test_changed_values(self):
        initial = {'name': 'Ada', 'email': '', 'notes': 'old'}
        current = {'name': 'Grace', 'email': 'g@example.com', 'notes': 'old'}

        changes = calculate_changes(initial, current)

        assert changes == {
            'name': {'old': 'Ada', 'new': 'Grace'},
            'email': {'old': '', 'new': 'g@example.com'},
        }

    def test_added_and_removed_fields(self):
        changes = calculate_changes({'legacy': 'x'}, {'fresh': 'y'})

        assert changes == {
            'legacy': {'old': 'x', 'new': None},
            'fresh': {'old': None, 'new': 'y'},
        }

    def test_field_only_in_current_values(self):
        changes = calculate_changes({'name': 'Ada'}, {'name': 'Ada', 'email': 'a@b.com'})

        assert changes == {'email': {'old': None, 'new': 'a@b.com'}}

    def test_restricted_to_fields(self):
        changes = calculate_changes({'a': '1', 'b': '1'}, {'a': '2', 'b': '2'}, fields={'b'})

        assert list(changes) == ['b']


class TestChangeSummary:
    """Test cases for get_change_summary function."""

    def test_summary_counts(self):
        changes = {
            'name': {'old': 'Ada', 'new': 'Grace'},
            'email': {'old': '', 'new': 'g@example.com'},
            'notes': {'old': 'old', 'new': ''},
        }

        assert get_change_summary(changes) == {'modified': 1, 'cleared': 1, 'filled': 1, 'total': 3}
