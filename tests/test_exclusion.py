"""Tests for class_metadata.exclusion module."""

from unittest.mock import Mock

import pytest

from class_metadata.context import SerializationContext
from class_metadata.exceptions import InvalidArgumentError
from class_metadata.exclusion import (
    ChainExclusionStrategy,
    ExclusionStrategy,
    GroupsExclusionStrategy,
    MaxDepthExclusionStrategy,
    NoopExclusionStrategy,
    VersionExclusionStrategy,
    parse_version,
)
from class_metadata.metadata import ClassMetadata, PropertyMetadata

CLASS = ClassMetadata(name='app.Model')


def _excluded(strategy, context=None, **fields):
    prop = PropertyMetadata(name='foo', **fields)
    return strategy.should_exclude(prop, CLASS, context or SerializationContext())


class TestParseVersion:
    """Test parse_version helper."""

    def test_numeric_ordering(self):
        """Test components compare as numbers."""
        assert parse_version('1.10') > parse_version('1.9')

    def test_trailing_zeros(self):
        """Test trailing zero components are insignificant."""
        assert parse_version('1.0') == parse_version('1.0.0') == parse_version('1')

    def test_suffix_and_prefix(self):
        """Test a leading v and trailing qualifiers are ignored."""
        assert parse_version('v2.1.0-beta') == (2, 1)

    def test_invalid(self):
        """Test non-numeric versions are rejected."""
        with pytest.raises(InvalidArgumentError, match="latest"):
            parse_version('latest')


class TestNoopExclusionStrategy:
    """Test NoopExclusionStrategy."""

    def test_never_excludes(self):
        """Test every property is kept."""
        assert not _excluded(NoopExclusionStrategy(), groups=['x'], since='9.0', max_depth=0)


class TestGroupsExclusionStrategy:
    """Test GroupsExclusionStrategy."""

    def test_matching_group(self):
        """Test a property sharing a group is kept."""
        assert not _excluded(GroupsExclusionStrategy(['a']), groups=['a', 'b'])

    def test_other_group(self):
        """Test a property outside the active groups is excluded."""
        assert _excluded(GroupsExclusionStrategy(['a']), groups=['b'])

    def test_default_group(self):
        """Test properties without groups are always kept."""
        assert not _excluded(GroupsExclusionStrategy(['a']))
        assert not _excluded(GroupsExclusionStrategy(['a']), groups=[])


class TestVersionExclusionStrategy:
    """Test VersionExclusionStrategy."""

    @pytest.mark.parametrize('version, excluded', [
        ('0.9.0', True),
        ('1.0.0', False),
        ('1.5', False),
        ('2.0', False),
        ('2.0.1', True),
    ])
    def test_bounds(self, version, excluded):
        """Test since and until are inclusive bounds."""
        strategy = VersionExclusionStrategy(version)
        assert _excluded(strategy, since='1.0.0', until='2.0.0') is excluded

    def test_unbounded_property(self):
        """Test a property without bounds is always kept."""
        assert not _excluded(VersionExclusionStrategy('5.0'))

    def test_invalid_version(self):
        """Test a malformed active version fails at construction."""
        with pytest.raises(InvalidArgumentError):
            VersionExclusionStrategy('not-a-version')


class TestMaxDepthExclusionStrategy:
    """Test MaxDepthExclusionStrategy."""

    def test_depth(self):
        """Test a property is excluded once depth exceeds its max_depth."""
        strategy = MaxDepthExclusionStrategy()
        context = SerializationContext()

        context.enter()
        assert not _excluded(strategy, context, max_depth=1)
        context.enter()
        assert _excluded(strategy, context, max_depth=1)

    def test_unbounded_property(self):
        """Test properties without max_depth are kept at any depth."""
        assert not _excluded(MaxDepthExclusionStrategy(), SerializationContext(depth=50))

    def test_context_without_depth(self):
        """Test contexts without a depth count as depth zero."""
        assert not _excluded(MaxDepthExclusionStrategy(), object(), max_depth=0)


class TestChainExclusionStrategy:
    """Test ChainExclusionStrategy."""

    def _strategy(self, excluded):
        strategy = Mock(spec=ExclusionStrategy)
        strategy.should_exclude.return_value = excluded
        return strategy

    def test_any_excludes(self):
        """Test one excluding child is enough."""
        chain = ChainExclusionStrategy([self._strategy(False), self._strategy(True)])
        assert _excluded(chain)

    def test_all_admit(self):
        """Test the property is kept when every child keeps it."""
        chain = ChainExclusionStrategy([self._strategy(False), self._strategy(False)])
        assert not _excluded(chain)

    def test_children_receive_arguments(self):
        """Test children are called with the property, class and context."""
        child = self._strategy(False)
        context = SerializationContext()
        prop = PropertyMetadata(name='foo')

        ChainExclusionStrategy([child]).should_exclude(prop, CLASS, context)

        child.should_exclude.assert_called_once_with(prop, CLASS, context)
