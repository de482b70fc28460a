"""
Relationship Declaration Tests
"""

import pytest

from sidepost import ConfigurationError, PayloadError, RelationshipError, Resource
from sidepost.core.relationships import BelongsTo, HasMany, ManyToMany, PolymorphicBelongsTo

from conftest import Employee, Position, Team, Visa


class TestForeignKeys:

    def test_belongs_to_default(self, employee_resource):
        relationship = employee_resource.belongs_to("classification", resource=employee_resource)
        assert relationship.kind == "belongs_to"
        assert relationship.foreign_key == "classification_id"
        assert relationship.persist_before_parent

    def test_has_many_default_uses_owner_model(self, employee_resource, position_resource):
        relationship = employee_resource.has_many("positions", resource=position_resource)
        assert relationship.foreign_key == "employee_id"
        assert not relationship.singular
        assert not relationship.persist_before_parent

    def test_has_one_is_singular(self, employee_resource, bio_resource):
        relationship = employee_resource.has_one("bio", resource=bio_resource)
        assert relationship.kind == "has_one"
        assert relationship.singular
        assert relationship.foreign_key == "employee_id"

    def test_explicit_foreign_key(self, employee_resource, position_resource):
        relationship = employee_resource.has_many(
            "jobs", resource=position_resource, foreign_key="worker_id"
        )
        assert relationship.foreign_key == "worker_id"

    def test_linkage(self):
        employee = Employee(id=3)
        position = Position(id=9)

        assert BelongsTo("employee").owner_linkage(employee, "create") == {"employee_id": 3}
        assert BelongsTo("employee").owner_linkage(employee, "disassociate") == {"employee_id": None}

        has_many = HasMany("positions", foreign_key="employee_id")
        assert has_many.child_linkage(employee, "update") == {"employee_id": 3}
        assert has_many.child_linkage(employee, "disassociate") == {"employee_id": None}
        assert has_many.owner_linkage(position, "create") == {}


class TestManyToMany:

    def test_join_table_and_keys(self, employee_resource, team_resource):
        relationship = employee_resource.many_to_many(
            "teams", resource=team_resource, foreign_key={"team_memberships": "team_id"}
        )
        assert relationship.join_table == "team_memberships"
        assert relationship.foreign_key == "team_id"
        assert relationship.owner_key == "employee_id"
        assert relationship.join_attributes(Employee(id=1), Team(id=2)) == {
            "employee_id": 1, "team_id": 2,
        }

    @pytest.mark.parametrize("foreign_key", [None, "team_id", {"a": "x", "b": "y"}])
    def test_requires_single_join_mapping(self, foreign_key):
        with pytest.raises(ConfigurationError):
            ManyToMany("teams", foreign_key=foreign_key)


class TestPolymorphic:

    @pytest.fixture
    def relationship(self, visa_resource):
        return PolymorphicBelongsTo(
            "credit_card", group_by="credit_card_type", groups={"Visa": visa_resource}
        )

    def test_group_for(self, relationship, visa_resource):
        assert relationship.group_for("visas") == "Visa"
        assert relationship.resource_for("visas") is visa_resource

    def test_unknown_group(self, relationship):
        with pytest.raises(PayloadError, match="mastercards"):
            relationship.group_for("mastercards", "/included/0")

    def test_owner_linkage(self, relationship):
        assert relationship.owner_linkage(Visa(id=4), "create") == {
            "credit_card_id": 4, "credit_card_type": "Visa",
        }
        assert relationship.owner_linkage(Visa(id=4), "disassociate") == {
            "credit_card_id": None, "credit_card_type": None,
        }

    def test_default_group_column(self, visa_resource):
        relationship = PolymorphicBelongsTo("payment", groups={"Visa": visa_resource})
        assert relationship.group_by == "payment_type"

    def test_requires_groups(self):
        with pytest.raises(ConfigurationError):
            PolymorphicBelongsTo("credit_card", group_by="credit_card_type")

    def test_single_resource_unavailable(self, relationship):
        with pytest.raises(RelationshipError):
            relationship.resource


class TestGraph:

    def test_lazy_resource_reference(self, employee_resource, position_resource):
        relationship = employee_resource.has_many("positions", resource=lambda: position_resource)
        assert relationship.resource is position_resource

    def test_type_mismatch(self, employee_resource, position_resource):
        relationship = employee_resource.has_many("positions", resource=position_resource)
        with pytest.raises(PayloadError, match="expects type 'positions'"):
            relationship.resource_for("teams", "/included/0")

    def test_duplicate_name(self, employee_resource, position_resource):
        employee_resource.has_many("positions", resource=position_resource)
        with pytest.raises(ConfigurationError, match="already declared"):
            employee_resource.has_many("positions", resource=position_resource)

    def test_declaration_order(self, employee_resource, position_resource, department_resource):
        employee_resource.has_many("positions", resource=position_resource)
        employee_resource.belongs_to("department", resource=department_resource)

        graph = employee_resource.relationships()
        assert graph.names() == ["positions", "department"]
        assert graph.get("department").persist_before_parent
        assert not graph.get("positions").persist_before_parent

    def test_subclass_graph_isolated_and_rebound(self, employee_resource, position_resource):
        employee_resource.has_many("positions", resource=position_resource)

        class ManagerResource(employee_resource):
            pass

        ManagerResource.has_many("reports", resource=lambda: employee_resource)

        assert "reports" not in employee_resource.relationships()
        inherited = ManagerResource.relationships().get("positions")
        assert inherited.owner is ManagerResource
        assert employee_resource.relationships().get("positions").owner is employee_resource

    def test_resource_type_derivation(self, employee_resource, position_resource, visa_resource):
        assert employee_resource.type == "employees"
        assert position_resource.type == "positions"
        assert visa_resource.type == "visas"

        class CreditCardResource(Resource):
            model = Visa

        assert CreditCardResource.type == "credit_cards"

    def test_missing_model_for_foreign_key(self, position_resource):
        class BareResource(Resource):
            pass

        relationship = BareResource.has_many("positions", resource=position_resource)
        with pytest.raises(RelationshipError):
            relationship.foreign_key
