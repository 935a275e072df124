"""Unit tests for detecting changed keys between two revisions of a source file."""
from locale_sync.change_detector import ChangeSet, detect_changed_keys
from locale_sync.locale_tree import flatten


class TestDetectChangedKeys:
    """Test suite for detect_changed_keys."""

    def test_added_modified_deleted(self):
        old = {'a': {'b': 'hi'}, 'c': 'x'}
        new = {'a': {'b': 'hello'}, 'd': 'y'}

        changes = detect_changed_keys(old, new)

        assert changes.added == ['d']
        assert changes.modified == ['a.b']
        assert changes.deleted == ['c']

    def test_identical_trees_produce_empty_change_set(self):
        tree = {'a': {'b': 'hi'}, 'list': [1, 2]}
        changes = detect_changed_keys(tree, {'a': {'b': 'hi'}, 'list': [1, 2]})
        assert changes.is_empty()
        assert changes.paths_to_translate == []

    def test_every_path_lands_in_exactly_one_bucket(self):
        old = {'keep': 'same', 'change': 'v1', 'gone': 'bye', 'nest': {'x': '1', 'y': '2'}}
        new = {'keep': 'same', 'change': 'v2', 'new': 'hi', 'nest': {'x': '1', 'z': '3'}}

        changes = detect_changed_keys(old, new)
        added, modified, deleted = set(changes.added), set(changes.modified), set(changes.deleted)

        assert not (added & modified) and not (added & deleted) and not (modified & deleted)
        all_paths = set(flatten(old)) | set(flatten(new))
        unchanged = all_paths - added - modified - deleted
        assert unchanged == {'keep', 'nest.x'}
        assert added == {'new', 'nest.z'}
        assert modified == {'change'}
        assert deleted == {'gone', 'nest.y'}

    def test_lists_compared_by_value(self):
        old = {'days': ['Mon', 'Tue']}
        assert detect_changed_keys(old, {'days': ['Mon', 'Tue']}).is_empty()
        assert detect_changed_keys(old, {'days': ['Mon', 'Wed']}).modified == ['days']

    def test_type_changes_count_as_modified(self):
        changes = detect_changed_keys({'a': 1, 'b': True, 'c': 1}, {'a': True, 'b': 1, 'c': 1.0})
        assert changes.modified == ['a', 'b', 'c']

    def test_leaf_turned_into_branch(self):
        changes = detect_changed_keys({'title': 'Home'}, {'title': {'short': 'Home', 'long': 'Home page'}})
        assert changes.added == ['title.short', 'title.long']
        assert changes.deleted == ['title']

    def test_empty_old_tree_marks_everything_added(self):
        changes = detect_changed_keys({}, {'a': 'x', 'b': {'c': 'y'}})
        assert changes.added == ['a', 'b.c']
        assert changes.modified == []
        assert changes.deleted == []

    def test_order_follows_documents(self):
        old = {'z': '1', 'y': '2', 'x': '3'}
        new = {'c': 'new', 'b': 'new'}
        changes = detect_changed_keys(old, new)
        assert changes.added == ['c', 'b']
        assert changes.deleted == ['z', 'y', 'x']


class TestChangeSet:
    def test_paths_to_translate_combines_added_and_modified(self):
        changes = ChangeSet(added=['a'], modified=['b'], deleted=['c'])
        assert changes.paths_to_translate == ['a', 'b']
        assert not changes.is_empty()

    def test_default_is_empty(self):
        assert ChangeSet().is_empty()
