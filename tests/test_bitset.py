# tests/test_bitset.py
"""
Tests for the LocalBitSet domain.
"""

import pytest

from taintflow import bitset
from taintflow.bitset import LocalBitSet
from taintflow.errors import DomainMismatchError, LocalIndexError
from tests.conftest import bits


class TestConstruction:

    def test_bottom_is_empty(self):
        s = LocalBitSet.bottom(8)
        assert s.is_empty()
        assert len(s) == 0
        assert s.domain_size == 8

    def test_from_locals_ignores_duplicates(self):
        assert bits(3, 2, 0, 2).to_list() == [0, 2]

    def test_from_locals(self):
        s = bits(5, 1, 3)
        assert s.as_frozenset() == frozenset({1, 3})

    def test_zero_sized_domain(self):
        s = LocalBitSet.bottom(0)
        assert s.is_empty()
        assert list(s) == []

    def test_bit_pattern_must_fit(self):
        with pytest.raises(ValueError):
            LocalBitSet(2, 0b100)

    def test_negative_domain_rejected(self):
        with pytest.raises(ValueError):
            LocalBitSet(-1)

    def test_module_level_helpers(self):
        a = bitset.bottom(4)
        a.insert(2)
        b = bits(4, 0)
        joined = bitset.join(a, b)
        assert bitset.contains(joined, 0)
        assert bitset.contains(joined, 2)
        assert not bitset.contains(joined, 1)


class TestMembership:

    def test_insert_and_contains(self):
        s = LocalBitSet.bottom(4)
        assert s.insert(2) is True
        assert s.contains(2)
        assert not s.contains(1)

    def test_insert_reports_no_change_when_already_set(self):
        s = bits(4, 2)
        assert s.insert(2) is False

    def test_remove(self):
        s = bits(4, 1, 2)
        assert s.remove(1) is True
        assert s.remove(1) is False
        assert s.to_list() == [2]

    def test_out_of_range_is_fatal(self):
        s = LocalBitSet.bottom(4)
        with pytest.raises(LocalIndexError) as exc:
            s.contains(4)
        assert exc.value.local == 4
        assert exc.value.domain_size == 4
        assert "TF-2001" in str(exc.value)

    def test_out_of_range_is_an_index_error(self):
        s = LocalBitSet.bottom(2)
        with pytest.raises(IndexError):
            s.insert(-1)

    def test_bool_is_not_a_local(self):
        s = LocalBitSet.bottom(2)
        with pytest.raises(TypeError):
            s.contains(True)

    def test_in_operator_never_raises(self):
        s = bits(3, 1)
        assert 1 in s
        assert 7 not in s
        assert "x" not in s

    def test_clear(self):
        s = bits(3, 0, 2)
        s.clear()
        assert s.is_empty()


class TestLattice:

    def test_join_is_union(self):
        a = bits(4, 0, 1)
        b = bits(4, 1, 3)
        assert (a | b).to_list() == [0, 1, 3]
        # operands untouched
        assert a.to_list() == [0, 1]

    def test_join_keeps_domain_size(self):
        assert bits(6, 1).join(bits(6, 5)).domain_size == 6

    def test_union_with_reports_change(self):
        a = bits(4, 0)
        assert a.union_with(bits(4, 2)) is True
        assert a.union_with(bits(4, 2)) is False
        assert a.to_list() == [0, 2]

    def test_mismatched_domains(self):
        with pytest.raises(DomainMismatchError):
            bits(3, 0).join(bits(4, 0))

    def test_subset(self):
        assert bits(4, 1) <= bits(4, 1, 2)
        assert not bits(4, 0, 1).is_subset(bits(4, 1))
        assert LocalBitSet.bottom(4).is_subset(bits(4))

    def test_difference(self):
        assert (bits(4, 0, 1, 2) - bits(4, 1)).to_list() == [0, 2]

    def test_overwrite(self):
        a = bits(4, 0)
        a.overwrite(bits(4, 3))
        assert a.to_list() == [3]

    def test_copy_is_independent(self):
        a = bits(4, 1)
        b = a.copy()
        b.insert(2)
        assert a.to_list() == [1]


class TestValueSemantics:

    def test_equality(self):
        assert bits(4, 1, 2) == bits(4, 2, 1)
        assert bits(4, 1) != bits(5, 1)

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(bits(2))

    def test_repr_uses_local_names(self):
        assert repr(bits(4, 1, 3)) == "{_1, _3}"
        assert repr(bits(4)) == "{}"
