from tests.base import *  # noqa: F401,F403

from app.services.query.entities import EntityRegistry, QueryableEntity, load_entity_registry
from app.services.query.errors import UnresolvedPolymorphicType


class EntityRegistryTests(unittest.TestCase):
    def test_registry_discovers_queryable_models(self):
        registry = load_entity_registry()
        self.assertEqual(
            registry.tables(),
            ["categories", "comments", "permissions", "posts", "roles", "tags", "users"],
        )
        self.assertIs(registry.get("users"), User)
        self.assertIn("posts", registry)
        self.assertIsNone(registry.get("post_tags"))

    def test_only_explicit_morph_types_are_resolvable(self):
        registry = load_entity_registry()
        self.assertEqual(registry.morph_type("users"), "User")
        with self.assertRaises(UnresolvedPolymorphicType):
            registry.morph_type("posts")

    def test_manual_registration(self):
        registry = EntityRegistry()
        registry.register(Tag, morphable=True)
        self.assertEqual(registry.morph_type("tags"), "Tag")
        registry.register_morph_type("teams", "Team")
        self.assertEqual(registry.morph_type("teams"), "Team")

    def test_models_satisfy_entity_protocol(self):
        self.assertTrue(issubclass(Post, QueryableEntity))
        self.assertEqual(Post.searchable_fields(), ["title", "body"])
        self.assertEqual(Post.boolean_fields(), {"is_published"})
        self.assertEqual(Post.date_fields(), {"published_at", "created_at", "updated_at"})
        self.assertEqual(User.date_fields(), {"date_of_birth", "created_at", "updated_at"})
