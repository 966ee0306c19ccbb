"""Tests for class_metadata.loader module."""

import pytest

from class_metadata.exceptions import InvalidArgumentError
from class_metadata.loader import (
    AnnotationClassMetadataLoader,
    ChainClassMetadataLoader,
    Property,
    ReflectionClassMetadataLoader,
    declared_property_names,
)
from class_metadata.metadata import ClassMetadata, PropertyMetadata


def _record(name, **properties):
    return ClassMetadata(
        name=name,
        properties={
            prop: PropertyMetadata(name=prop, **fields) for prop, fields in properties.items()
        }
    )


class TestReflectionLoader:
    """Test ReflectionClassMetadataLoader."""

    def test_annotated_class(self, models_package):
        """Test annotated attributes become skeletal properties."""
        metadata = ReflectionClassMetadataLoader().load(models_package.model)

        assert metadata.name == models_package.model
        assert list(metadata.properties) == ['foo', 'baz']
        # Names only, no declarative data
        assert metadata.get_property('foo') == PropertyMetadata(name='foo')
        assert metadata.xml_root is None

    def test_inherited_annotations(self, models_package):
        """Test base class properties come first."""
        metadata = ReflectionClassMetadataLoader().load(models_package.child)
        assert list(metadata.properties) == ['foo', 'baz', 'qux']

    def test_dataclass_skips_private(self, models_package):
        """Test dataclass fields are used and private names skipped."""
        metadata = ReflectionClassMetadataLoader().load(models_package.point)
        assert list(metadata.properties) == ['x', 'y']

    def test_slots(self, models_package):
        """Test __slots__ are used when nothing is annotated."""
        metadata = ReflectionClassMetadataLoader().load(models_package.slotted)
        assert list(metadata.properties) == ['a', 'b']

    def test_nested_class(self, models_package):
        """Test nested classes resolve through their qualified name."""
        metadata = ReflectionClassMetadataLoader().load(models_package.inner)
        assert list(metadata.properties) == ['value']

    def test_unknown_class(self):
        """Test unresolvable names give no data."""
        assert ReflectionClassMetadataLoader().load('nonexistent_module.Model') is None

    def test_not_enumerable(self):
        """Test reflection cannot enumerate classes."""
        loader = ReflectionClassMetadataLoader()
        assert loader.supports_enumeration() is False
        assert loader.enumerate_known_classes() == []


class TestDeclaredPropertyNames:
    """Test declared_property_names helper."""

    def test_plain_class(self):
        """Test a class without declarations has no properties."""

        class Empty:
            pass

        assert declared_property_names(Empty) == []


class TestAnnotationLoader:
    """Test AnnotationClassMetadataLoader."""

    def test_markers_and_root(self, models_package):
        """Test Property markers and __xml_root__ are read."""
        metadata = AnnotationClassMetadataLoader().load(models_package.model)

        assert metadata.xml_root == 'model'
        assert list(metadata.properties) == ['foo']
        assert metadata.get_property('foo') == PropertyMetadata(name='foo', alias='bar')

    def test_class_without_markers(self, models_package):
        """Test classes without declarations give no data."""
        assert AnnotationClassMetadataLoader().load(models_package.plain) is None
        assert AnnotationClassMetadataLoader().load(models_package.point) is None

    def test_unknown_class(self):
        """Test unresolvable names give no data."""
        assert AnnotationClassMetadataLoader().load('nonexistent_module.Model') is None

    def test_not_enumerable(self):
        """Test annotations cannot enumerate classes."""
        assert AnnotationClassMetadataLoader().supports_enumeration() is False


class TestProperty:
    """Test the Property marker."""

    def test_options(self):
        """Test options are kept."""
        marker = Property(alias='bar', since='1.0')
        assert marker.options == {'alias': 'bar', 'since': '1.0'}
        assert 'alias' in repr(marker)

    def test_unknown_option(self):
        """Test unknown options are rejected."""
        with pytest.raises(TypeError, match="colour"):
            Property(colour='red')

    def test_numeric_version_stored_as_string(self):
        """Test numeric bounds are kept as version strings."""
        assert Property(since=1.5).options == {'since': '1.5'}

    @pytest.mark.parametrize('bound', ['since', 'until'])
    def test_invalid_version(self, bound):
        """Test malformed version bounds are rejected at declaration."""
        with pytest.raises(InvalidArgumentError, match="beta"):
            Property(**{bound: 'beta'})

    def test_name_not_allowed(self):
        """Test the property name comes from the annotation, not the marker."""
        with pytest.raises(TypeError):
            Property(name='foo')


class TestChainLoader:
    """Test ChainClassMetadataLoader merge policy."""

    def test_first_loader_wins(self, static_loader):
        """Test the earlier loader's alias is kept."""
        first = static_loader(_record('app.Model', foo={'alias': 'first'}))
        second = static_loader(_record('app.Model', foo={'alias': 'second'}))

        metadata = ChainClassMetadataLoader([first, second]).load('app.Model')
        assert metadata.get_property('foo').alias == 'first'

        # Order of registration decides, not order of calls
        metadata = ChainClassMetadataLoader([second, first]).load('app.Model')
        assert metadata.get_property('foo').alias == 'second'

    def test_gap_filling(self, static_loader):
        """Test fields from different loaders are combined."""
        first = static_loader(_record('app.Model', foo={'alias': 'bar'}))
        second = static_loader(_record('app.Model', foo={'groups': ['g']}))

        prop = ChainClassMetadataLoader([first, second]).load('app.Model').get_property('foo')
        assert prop.alias == 'bar'
        assert prop.groups == frozenset({'g'})

    def test_skips_loaders_without_data(self, static_loader):
        """Test loaders answering None do not interrupt the fold."""
        empty = static_loader()
        loader = static_loader(_record('app.Model', foo={}))

        metadata = ChainClassMetadataLoader([empty, loader]).load('app.Model')
        assert list(metadata.properties) == ['foo']
        assert empty.calls == ['app.Model']

    def test_no_data(self, static_loader):
        """Test a chain without answers gives no data."""
        chain = ChainClassMetadataLoader([static_loader(), static_loader()])
        assert chain.load('app.Model') is None

    def test_add_loader(self, static_loader):
        """Test loaders can be appended after construction."""
        chain = ChainClassMetadataLoader()
        assert chain.loaders == ()
        loader = static_loader()
        chain.add_loader(loader)
        assert chain.loaders == (loader,)

    def test_enumeration_union(self, static_loader):
        """Test enumeration is the de-duplicated union of enumerable children."""
        first = static_loader(_record('app.A'), _record('app.B'), enumerable=True)
        hidden = static_loader(_record('app.Hidden'))
        second = static_loader(_record('app.B'), _record('app.C'), enumerable=True)

        chain = ChainClassMetadataLoader([first, hidden, second])
        assert chain.supports_enumeration() is True
        assert chain.enumerate_known_classes() == ['app.A', 'app.B', 'app.C']

    def test_not_enumerable_without_enumerable_children(self, static_loader):
        """Test enumeration support requires one enumerable child."""
        chain = ChainClassMetadataLoader([static_loader(), ReflectionClassMetadataLoader()])
        assert chain.supports_enumeration() is False
        assert chain.enumerate_known_classes() == []

    def test_annotation_then_reflection(self, models_package):
        """Test annotation data is completed by reflected properties."""
        chain = ChainClassMetadataLoader([
            AnnotationClassMetadataLoader(),
            ReflectionClassMetadataLoader(),
        ])
        metadata = chain.load(models_package.model)

        assert list(metadata.properties) == ['foo', 'baz']
        assert metadata.get_property('foo').alias == 'bar'
        assert metadata.xml_root == 'model'
