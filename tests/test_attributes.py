# tests/test_attributes.py
"""Tests for the model attribute store."""

import threading

import pytest

from tree_ensemble.models.attributes import AttributeStore
from tree_ensemble.models.booster import Booster
from tree_ensemble.utils.exceptions import ConfigurationError


class TestAttributeStore:
    """Test cases for the lock-guarded attribute store."""

    def test_set_get_replace(self):
        """Test that setting an existing key replaces its value."""
        store = AttributeStore()
        store.set_attr('stage', 'dev')
        store.set_attr('stage', 'prod')
        assert store.get_attr('stage') == 'prod'
        assert store.get_attr('missing') is None

    def test_none_deletes(self):
        """Test that a None value deletes the key."""
        store = AttributeStore({'a': '1', 'b': '2'})
        store.set_attr('a', None)
        assert store.attr_names() == ['b']
        store.set_attrs({'b': None})
        assert len(store) == 0

    def test_snapshot_is_a_copy(self):
        """Test that get_attrs returns an independent copy."""
        store = AttributeStore({'a': '1'})
        snapshot = store.get_attrs()
        snapshot['a'] = 'changed'
        assert store.get_attr('a') == '1'

    def test_bulk_merge_validates_before_applying(self):
        """Test that one invalid value rejects the whole merge."""
        store = AttributeStore()
        with pytest.raises(ConfigurationError):
            store.set_attrs({'a': '1', 'b': 2})
        assert store.get_attrs() == {}

    def test_replace_then_merge(self):
        """Test a replaced key followed by a three-key merge leaves four attributes."""
        store = AttributeStore()
        store.set_attr('testKey1', 'testValue1')
        assert store.get_attr('testKey1') == 'testValue1'

        store.set_attr('testKey1', 'testValue2')
        assert store.get_attr('testKey1') == 'testValue2'

        store.set_attrs({'aa': 'AA', 'bb': 'BB', 'cc': 'CC'})
        attrs = store.get_attrs()
        assert len(attrs) == 4
        assert attrs['testKey1'] == 'testValue2'
        assert attrs['bb'] == 'BB'

    @pytest.mark.parametrize("key,value", [(1, 'x'), ('k', 1.5), (None, 'x')])
    def test_non_string_rejected(self, key, value):
        """Test that non-string keys and values are rejected."""
        with pytest.raises(ConfigurationError):
            AttributeStore().set_attr(key, value)

    @pytest.mark.concurrency
    def test_bulk_merge_is_atomic_for_readers(self):
        """Test that readers never see half of a bulk merge."""
        store = AttributeStore({'x': '0', 'y': '0'})
        torn = []
        done = threading.Event()

        def writer():
            for i in range(2000):
                store.set_attrs({'x': str(i), 'y': str(i)})
            done.set()

        def reader():
            while not done.is_set():
                snapshot = store.get_attrs()
                if snapshot['x'] != snapshot['y']:
                    torn.append(snapshot)

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert torn == []


class TestBoosterAttributes:
    """Test attributes carried by a Booster."""

    def test_attributes_persist(self, trained_booster):
        """Test that attributes survive a save and load."""
        trained_booster.set_attrs({'dataset': 'v3', 'note': 'baseline'})
        trained_booster.set_attr('note', None)

        restored = Booster(model_file=trained_booster.save_raw())
        assert restored.get_attrs() == {'dataset': 'v3'}
        assert restored.attr_names() == ['dataset']

    def test_best_iteration_accessors(self):
        """Test the typed best_iteration and best_score accessors."""
        booster = Booster()
        assert booster.best_iteration is None
        booster.set_attrs({'best_iteration': '4', 'best_score': '0.25'})
        assert booster.best_iteration == 4
        assert booster.best_score == 0.25
