"""Tests for SurrealDB schema generation."""

import pytest

from db.models import DescriptorRegistry, EntityDescriptor, FieldSpec
from db.schema_generator import (
    CollectionSchema,
    ResolvedField,
    extract_indexes,
    generate_table_schema,
    surreal_type,
)


@pytest.fixture
def registry() -> DescriptorRegistry:
    """Registry with an embedded `Tag` entity."""
    registry = DescriptorRegistry()
    registry.add(
        EntityDescriptor(
            type_name="Tag",
            id_field="label",
            fields={"label": FieldSpec("string", required=True)},
        )
    )
    return registry


@pytest.fixture
def article() -> EntityDescriptor:
    """Descriptor mixing scalar, array and entity fields."""
    return EntityDescriptor(
        type_name="Article",
        id_field="slug",
        fields={
            "slug": FieldSpec("string", required=True),
            "title": FieldSpec("string", required=True, indexed=True),
            "views": FieldSpec("number", indexed=True),
            "publishedAt": FieldSpec("date"),
            "extra": FieldSpec("any"),
            "tags": FieldSpec("array", item_type="Tag"),
        },
    )


class TestSurrealType:
    """Test cases for field type translation."""

    def test_scalars(self, registry: DescriptorRegistry) -> None:
        """Test scalar types, optional unless required."""
        assert surreal_type(FieldSpec("string"), registry) == "option<string>"
        assert surreal_type(FieldSpec("boolean", required=True), registry) == "bool"
        assert surreal_type(FieldSpec("date"), registry) == "option<datetime>"
        assert surreal_type(FieldSpec("any"), registry) == "any"

    def test_arrays(self, registry: DescriptorRegistry) -> None:
        """Test arrays of scalars and of entities."""
        assert (
            surreal_type(FieldSpec("array", item_type="number"), registry)
            == "option<array<number>>"
        )
        assert (
            surreal_type(FieldSpec("array", item_type="Tag", required=True), registry)
            == "array<object>"
        )
        assert surreal_type(FieldSpec("array"), registry) == "option<array>"

    def test_entity_field(self, registry: DescriptorRegistry) -> None:
        """Test entity-typed fields are embedded objects."""
        assert surreal_type(FieldSpec("Tag"), registry) == "option<object>"

    def test_unknown_type(self, registry: DescriptorRegistry) -> None:
        """Test unknown types are rejected."""
        with pytest.raises(ValueError, match="Unknown field type"):
            surreal_type(FieldSpec("Missing"), registry)

    def test_item_type_on_scalar(self) -> None:
        """Test item types are only valid for arrays."""
        with pytest.raises(ValueError, match="only valid for arrays"):
            FieldSpec("string", item_type="number")


class TestTableSchema:
    """Test cases for table definitions."""

    def test_extract_indexes(self, article: EntityDescriptor) -> None:
        """Test one index per indexed field."""
        assert extract_indexes(article) == {
            "idx_article_title": ["title"],
            "idx_article_views": ["views"],
        }

    def test_generate(
        self, article: EntityDescriptor, registry: DescriptorRegistry
    ) -> None:
        """Test the generated statements."""
        schema = CollectionSchema(
            table=article.type_name,
            id_field=article.id_field,
            fields={
                name: ResolvedField(name, spec, surreal_type(spec, registry))
                for name, spec in article.fields.items()
            },
            indexes=extract_indexes(article),
        )

        statements = generate_table_schema(schema).splitlines()

        assert statements == [
            "DEFINE TABLE IF NOT EXISTS Article SCHEMALESS;",
            "DEFINE FIELD IF NOT EXISTS title ON Article TYPE string;",
            "DEFINE FIELD IF NOT EXISTS views ON Article TYPE option<number>;",
            "DEFINE FIELD IF NOT EXISTS publishedAt ON Article TYPE option<datetime>;",
            "DEFINE FIELD IF NOT EXISTS tags ON Article TYPE option<array<object>>;",
            "DEFINE INDEX IF NOT EXISTS idx_article_title ON Article COLUMNS title;",
            "DEFINE INDEX IF NOT EXISTS idx_article_views ON Article COLUMNS views;",
        ]

    def test_field_type_of_path(self, article: EntityDescriptor) -> None:
        """Test field types resolve from the top-level segment."""
        schema = CollectionSchema(
            table="Article",
            id_field="slug",
            fields={
                "publishedAt": ResolvedField(
                    "publishedAt", article.fields["publishedAt"], "option<datetime>"
                )
            },
            indexes={},
        )

        assert schema.field_type("publishedAt") == "date"
        assert schema.field_type("publishedAt.day") == "date"
        assert schema.field_type("missing") is None
