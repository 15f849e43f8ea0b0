from datetime import date

from tests.base import *  # noqa: F401,F403

from app.services.query.errors import ValidationFailed
from app.services.validation import ModelRuleProvider, RuleSet, RuleValidator, split_rules, update_unique_rules


class UpdateUniqueRulesTests(unittest.TestCase):
    def test_unique_rule_gains_excluded_id(self):
        rules = {"email": "required|email|unique:users,email"}
        self.assertEqual(
            update_unique_rules(rules, 5),
            {"email": ["required", "email", "unique:users,email,5,id"]},
        )

    def test_column_defaults_to_field_name(self):
        self.assertEqual(update_unique_rules({"slug": ["unique:categories"]}, 9), {"slug": ["unique:categories,slug,9,id"]})

    def test_custom_id_column_is_kept(self):
        rules = {"email": ["unique:users,email,NULL,user_id"]}
        self.assertEqual(update_unique_rules(rules, 5), {"email": ["unique:users,email,5,user_id"]})

    def test_is_idempotent_and_replaces_previous_exclusion(self):
        once = update_unique_rules({"name": "required|unique:roles,name"}, 3)
        self.assertEqual(update_unique_rules(once, 3), once)
        self.assertEqual(update_unique_rules(once, 8), {"name": ["required", "unique:roles,name,8,id"]})

    def test_malformed_and_non_string_rules_are_left_alone(self):
        check = lambda field, value: None  # noqa: E731
        rules = {"a": ["unique", "unique:"], "b": [check]}
        self.assertEqual(update_unique_rules(rules, 1), {"a": ["unique", "unique:"], "b": [check]})

    def test_input_is_not_mutated(self):
        rules = {"email": ["required", "unique:users,email"]}
        update_unique_rules(rules, 1)
        self.assertEqual(rules, {"email": ["required", "unique:users,email"]})


class RuleProviderTests(unittest.TestCase):
    def test_reads_model_rules_and_messages(self):
        rule_set = ModelRuleProvider().rules_for(User)
        self.assertEqual(rule_set.rules["email"], ["required", "email", "unique:users,email"])
        self.assertEqual(rule_set.messages["email.unique"], "This email address is already registered.")

    def test_rules_declared_as_lists_are_kept(self):
        rule_set = ModelRuleProvider().rules_for(Role)
        self.assertEqual(rule_set.rules["name"], ["required", "string", "max:100", "unique:roles,name"])
        rule_set.rules["name"].append("min:1")
        self.assertEqual(Role.__rules__["name"], ["required", "string", "max:100", "unique:roles,name"])

    def test_split_rules(self):
        self.assertEqual(split_rules("required||string"), ["required", "string"])
        self.assertEqual(split_rules(None), [])


class RuleValidatorTests(QueryEngineBase):
    def _validate(self, data, model=User):
        return RuleValidator(self.db).validate(data, ModelRuleProvider().rules_for(model))

    def _errors(self, data, model=User):
        with self.assertRaises(ValidationFailed) as ctx:
            self._validate(data, model)
        return ctx.exception.field_errors

    def test_valid_payload_returns_ruled_fields_only(self):
        data = {"name": "Dan", "email": "dan@example.com", "nickname": "dd", "date_of_birth": "2000-01-01"}
        self.assertEqual(self._validate(data), {"name": "Dan", "email": "dan@example.com", "date_of_birth": "2000-01-01"})

    def test_required_and_format_messages(self):
        errors = self._errors({"email": "not-an-email", "date_of_birth": "someday", "is_active": "perhaps"})
        self.assertEqual(errors["name"], ["The name field is required."])
        self.assertEqual(errors["email"], ["The email field must be a valid email address."])
        self.assertEqual(errors["date_of_birth"], ["The date of birth field must be a valid date."])
        self.assertEqual(errors["is_active"], ["The is active field must be true or false."])

    def test_unique_uses_message_override(self):
        errors = self._errors({"name": "Alice", "email": "alice@example.com"})
        self.assertEqual(errors, {"email": ["This email address is already registered."]})

    def test_unique_ignores_excluded_row(self):
        rule_set = ModelRuleProvider().rules_for(User)
        rule_set = RuleSet(rules=update_unique_rules(rule_set.rules, 1), messages=rule_set.messages)
        validated = RuleValidator(self.db).validate({"name": "Alice", "email": "alice@example.com"}, rule_set)
        self.assertEqual(validated["email"], "alice@example.com")

    def test_min_max_in_and_exists(self):
        errors = self._errors({"user_id": 99, "title": "ab"}, Post)
        self.assertEqual(errors["user_id"], ["The selected user id is invalid."])
        self.assertEqual(errors["title"], ["The title field must be at least 3."])

        errors = self._errors({"name": "x" * 101, "guard_name": "cli"}, Role)
        self.assertEqual(errors["name"], ["The name field must not be greater than 100."])
        self.assertEqual(errors["guard_name"], ["The selected guard name is invalid."])

    def test_exists_accepts_string_key(self):
        validated = self._validate({"user_id": "2", "title": "Valid title"}, Post)
        self.assertEqual(validated["user_id"], "2")

    def test_sometimes_skips_absent_fields_and_nullable_allows_blank(self):
        validated = self._validate({"name": "Eve", "email": "eve@example.com", "date_of_birth": None})
        self.assertNotIn("is_active", validated)
        self.assertIsNone(validated["date_of_birth"])

    def test_date_objects_pass_date_rule(self):
        validated = self._validate({"name": "Eve", "email": "eve@example.com", "date_of_birth": date(1999, 9, 9)})
        self.assertEqual(validated["date_of_birth"], date(1999, 9, 9))

    def test_callable_rule(self):
        rule_set = RuleSet(rules={"name": ["required", lambda field, value: "No digits." if any(c.isdigit() for c in value) else None]})
        with self.assertRaises(ValidationFailed) as ctx:
            RuleValidator(self.db).validate({"name": "R2D2"}, rule_set)
        self.assertEqual(ctx.exception.field_errors, {"name": ["No digits."]})

    def test_unknown_rule_raises(self):
        with self.assertRaises(ValueError):
            RuleValidator(self.db).validate({"name": "x"}, RuleSet(rules={"name": "required|shiny"}))

    def test_error_payload_shape(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self._validate({})
        payload = ctx.exception.to_dict()
        self.assertEqual(payload["detail"], "The name field is required.")
        self.assertEqual(set(payload["errors"]), {"name", "email"})
