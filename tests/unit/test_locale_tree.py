import unittest

from locale_sync.exceptions import SourceFileError, UnsupportedKeyError
from locale_sync.locale_tree import deep_merge, extract_subset, flatten, remove_paths, unflatten


class TestFlatten(unittest.TestCase):
    def test_flatten_nested_tree(self):
        tree = {'a': {'b': 'x', 'c': {'d': 'y'}}, 'e': 'z'}
        self.assertEqual(flatten(tree), {'a.b': 'x', 'a.c.d': 'y', 'e': 'z'})

    def test_non_string_leaves_pass_through(self):
        tree = {'count': 3, 'enabled': True, 'missing': None, 'items': ['one', 'two'], 'ratio': 1.5}
        self.assertEqual(flatten(tree), tree)

    def test_lists_are_not_descended_into(self):
        tree = {'menu': {'entries': [{'label': 'Home'}, {'label': 'About'}]}}
        self.assertEqual(flatten(tree), {'menu.entries': [{'label': 'Home'}, {'label': 'About'}]})

    def test_empty_mapping_is_kept_as_leaf(self):
        self.assertEqual(flatten({'a': {}, 'b': 'x'}), {'a': {}, 'b': 'x'})

    def test_key_with_dot_is_rejected(self):
        with self.assertRaises(UnsupportedKeyError) as ctx:
            flatten({'errors': {'file.missing': 'File is missing'}})
        self.assertEqual(ctx.exception.key, 'file.missing')
        self.assertEqual(ctx.exception.parent_path, 'errors')
        self.assertIsInstance(ctx.exception, SourceFileError)

    def test_non_string_keys_are_stringified(self):
        self.assertEqual(flatten({1: 'one', 'nested': {2: 'two'}}), {'1': 'one', 'nested.2': 'two'})


class TestUnflatten(unittest.TestCase):
    def test_unflatten_builds_nesting(self):
        flat = {'a.b': 'x', 'a.c.d': 'y', 'e': 'z'}
        self.assertEqual(unflatten(flat), {'a': {'b': 'x', 'c': {'d': 'y'}}, 'e': 'z'})

    def test_round_trip_preserves_structure(self):
        tree = {
            'common': {'save': 'Save', 'cancel': 'Cancel'},
            'profile': {'greeting': 'Hello {{name}}', 'stats': {'posts': 3, 'public': False}},
            'tags': ['a', 'b'],
            'empty': {},
            'nothing': None,
        }
        self.assertEqual(unflatten(flatten(tree)), tree)

    def test_flatten_of_unflatten_is_identity(self):
        flat = {'x.y': 1, 'x.z': 'two', 'w': [3]}
        self.assertEqual(flatten(unflatten(flat)), flat)

    def test_colliding_paths_last_write_wins(self):
        self.assertEqual(unflatten({'a': 'leaf', 'a.b': 'branch'}), {'a': {'b': 'branch'}})


class TestSubsetAndRemoval(unittest.TestCase):
    def test_extract_subset_keeps_only_requested_paths(self):
        tree = {'a': {'b': 'x', 'c': 'y'}, 'd': 'z'}
        self.assertEqual(extract_subset(tree, ['a.c', 'd']), {'a': {'c': 'y'}, 'd': 'z'})

    def test_extract_subset_skips_unknown_paths(self):
        tree = {'a': {'b': 'x'}}
        self.assertEqual(extract_subset(tree, ['a.b', 'nope', 'a.zzz']), {'a': {'b': 'x'}})

    def test_remove_paths(self):
        self.assertEqual(remove_paths({'a': {'b': '1', 'c': '2'}}, ['a.b']), {'a': {'c': '2'}})

    def test_remove_last_child_drops_parent(self):
        self.assertEqual(remove_paths({'a': {'b': '1'}, 'c': '2'}, ['a.b']), {'c': '2'})

    def test_remove_paths_does_not_mutate_input(self):
        tree = {'a': {'b': '1', 'c': '2'}}
        remove_paths(tree, ['a.b'])
        self.assertEqual(tree, {'a': {'b': '1', 'c': '2'}})


class TestDeepMerge(unittest.TestCase):
    def test_merge_preserves_untouched_keys(self):
        self.assertEqual(deep_merge({'a': '1', 'b': '2'}, {'b': '3'}), {'a': '1', 'b': '3'})

    def test_merge_recurses_into_nested_mappings(self):
        existing = {'home': {'title': 'Inicio', 'subtitle': 'Bienvenido'}, 'footer': 'Pie'}
        incoming = {'home': {'title': 'Portada'}}
        self.assertEqual(
            deep_merge(existing, incoming),
            {'home': {'title': 'Portada', 'subtitle': 'Bienvenido'}, 'footer': 'Pie'}
        )

    def test_incoming_scalar_replaces_existing_mapping(self):
        self.assertEqual(deep_merge({'a': {'b': '1'}}, {'a': 'flat'}), {'a': 'flat'})

    def test_incoming_mapping_replaces_existing_scalar(self):
        self.assertEqual(deep_merge({'a': 'flat'}, {'a': {'b': '1'}}), {'a': {'b': '1'}})

    def test_empty_incoming_mapping_replaces_existing_branch(self):
        self.assertEqual(deep_merge({'a': {'b': '1'}, 'c': '2'}, {'a': {}}), {'a': {}, 'c': '2'})

    def test_incoming_mapping_fills_existing_empty_mapping(self):
        self.assertEqual(deep_merge({'a': {}}, {'a': {'b': '1'}}), {'a': {'b': '1'}})

    def test_lists_are_replaced_not_merged(self):
        self.assertEqual(deep_merge({'a': ['x', 'y']}, {'a': ['z']}), {'a': ['z']})

    def test_merge_does_not_mutate_inputs(self):
        existing = {'a': {'b': '1'}}
        incoming = {'a': {'c': '2'}}
        deep_merge(existing, incoming)
        self.assertEqual(existing, {'a': {'b': '1'}})
        self.assertEqual(incoming, {'a': {'c': '2'}})


if __name__ == '__main__':
    unittest.main()
