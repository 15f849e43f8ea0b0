from tests.base import *  # noqa: F401,F403

from app.services.query.entities import EntityRegistry
from app.services.query.errors import MalformedRelationDescriptor, UnresolvedPolymorphicType
from app.services.query.relations import (
    HasMany,
    ManyToMany,
    MorphMany,
    PivotNaming,
    apply_relation,
    parse_relation_descriptor,
    singularize,
)


class SingularizeTests(unittest.TestCase):
    def test_regular_and_irregular_words(self):
        cases = {
            "users": "user",
            "posts": "post",
            "categories": "category",
            "boxes": "box",
            "statuses": "status",
            "addresses": "address",
            "cases": "case",
            "people": "person",
            "children": "child",
            "news": "news",
            "status": "status",
        }
        for plural, singular in cases.items():
            self.assertEqual(singularize(plural), singular, plural)

    def test_snake_case_singularizes_last_segment(self):
        self.assertEqual(singularize("blog_posts"), "blog_post")
        self.assertEqual(singularize("order_items"), "order_item")


class RelationDescriptorTests(unittest.TestCase):
    def test_parses_each_kind(self):
        self.assertEqual(parse_relation_descriptor("users.hasMany.posts.5"), HasMany("users", "posts", 5))
        self.assertEqual(parse_relation_descriptor("posts.manyToMany.tags.7"), ManyToMany("posts", "tags", 7))
        self.assertEqual(parse_relation_descriptor("users.morphMany.roles.1"), MorphMany("users", "roles", 1))

    def test_non_numeric_anchor_stays_a_string(self):
        self.assertEqual(parse_relation_descriptor("users.hasMany.posts.abc").anchor_id, "abc")

    def test_malformed_descriptors_raise(self):
        for descriptor in ("users.hasMany.posts", "users.hasMany.posts.1.2", "users..posts.1", "users.belongsTo.posts.1", 42):
            with self.assertRaises(MalformedRelationDescriptor):
                parse_relation_descriptor(descriptor)


class PivotNamingTests(unittest.TestCase):
    def test_many_to_many_uses_singular_owner(self):
        pivots = PivotNaming()
        self.assertEqual(pivots.many_to_many("posts", "tags"), "post_tags")
        self.assertEqual(pivots.many_to_many("roles", "permissions"), "role_has_permissions")

    def test_registered_override_wins(self):
        pivots = PivotNaming()
        pivots.register("posts", "tags", "posts_tags")
        self.assertEqual(pivots.many_to_many("posts", "tags"), "posts_tags")

    def test_morph_pivot_name(self):
        self.assertEqual(PivotNaming().morph_many("roles"), "model_has_roles")


class RelationFilterTests(QueryEngineBase):
    def _related(self, model, descriptor, **kwargs):
        query = apply_relation(self.db.query(model), model, descriptor, registry=kwargs.pop("registry", self.registry), **kwargs)
        return sorted(self.ids(query.all()))

    def test_has_many_filters_by_owner_foreign_key(self):
        self.assertEqual(self._related(Post, "users.hasMany.posts.1"), [1, 2])
        self.assertEqual(self._related(Comment, "posts.hasMany.comments.1"), [1, 2])

    def test_self_referential_has_many_uses_parent_id(self):
        self.assertEqual(self._related(Category, "categories.hasMany.categories.1"), [2, 3])
        self.assertEqual(self._related(Category, "categories.hasMany.categories.2"), [4])

    def test_many_to_many_joins_pivot(self):
        query = apply_relation(self.db.query(Tag), Tag, "posts.manyToMany.tags.5", registry=self.registry)
        sql = str(query.statement)
        self.assertIn("JOIN post_tags", sql)
        self.assertIn("post_tags.post_id =", sql)
        self.assertEqual(self._related(Tag, "posts.manyToMany.tags.1"), [1, 2])

    def test_many_to_many_with_owner_prefix(self):
        self.assertEqual(self._related(Permission, "roles.manyToMany.permissions.1"), [1, 2])
        self.assertEqual(self._related(Permission, "roles.manyToMany.permissions.2"), [1])

    def test_many_to_many_requires_queried_table_on_the_right(self):
        with self.assertRaises(MalformedRelationDescriptor):
            apply_relation(self.db.query(Post), Post, "posts.manyToMany.tags.1", registry=self.registry)

    def test_morph_many_filters_by_owner_type_and_id(self):
        query = apply_relation(self.db.query(Role), Role, "users.morphMany.roles.1", registry=self.registry)
        self.assertIn("model_has_roles.model_type", str(query.statement))
        self.assertEqual(sorted(self.ids(query.all())), [1, 2])
        self.assertEqual(self._related(Role, "users.morphMany.roles.2"), [2])

    def test_morph_many_on_unregistered_owner_raises(self):
        with self.assertRaises(UnresolvedPolymorphicType) as ctx:
            apply_relation(self.db.query(Role), Role, "posts.morphMany.roles.1", registry=self.registry)
        self.assertIn("posts", str(ctx.exception))

    def test_morph_type_can_be_registered_explicitly(self):
        registry = EntityRegistry(morph_types={"teams": "User"})
        self.assertEqual(self._related(Role, "teams.morphMany.roles.2", registry=registry), [2])
