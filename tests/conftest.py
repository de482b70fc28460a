"""
Shared fixtures for the sidepost test suite.

Resource classes are rebuilt for every test so attribute, hook and
relationship declarations never leak between tests.
"""

from typing import Any, Optional

import pytest

from sidepost import MemoryAdapter, Model, Resource, reset_adapters, set_config
from sidepost.configuration import Environment, SidepostConfig


# Models

class Employee(Model):
    first_name: Optional[Any] = None
    last_name: Optional[Any] = None
    age: Optional[Any] = None


class Position(Model):
    title: Optional[Any] = None
    employee_id: Optional[Any] = None


Position.validates_presence("title")


class Department(Model):
    name: Optional[Any] = None


class Classification(Model):
    description: Optional[Any] = None


Classification.validates_presence("description")


class Bio(Model):
    text: Optional[Any] = None


Bio.validates_presence("text")


class Team(Model):
    name: Optional[Any] = None


Team.validates_presence("name")


class Visa(Model):
    number: Optional[Any] = None


Visa.validates_presence("number")


@pytest.fixture(autouse=True)
def testing_config():
    """Fresh testing configuration and adapter cache per test"""
    set_config(SidepostConfig.for_environment(Environment.TESTING))
    reset_adapters()
    yield
    reset_adapters()
    set_config(None)


@pytest.fixture
def adapter():
    return MemoryAdapter()


def make_employee_resource(adapter):
    class EmployeeResource(Resource):
        model = Employee
        calls = []

        def do_before_attributes(self, attributes):
            type(self).calls.append(("do_before_attributes", dict(attributes)))
            attributes["last_name"] = attributes.pop("first_name")

        def do_after_attributes(self, model):
            type(self).calls.append(("do_after_attributes", model.model_copy()))
            model.last_name = model.first_name

        def do_around_attributes(self, attributes, proceed):
            type(self).calls.append(("do_around_attributes", dict(attributes)))
            attributes["last_name"] = attributes.pop("first_name")
            model = proceed()
            model.first_name = "after yield"

        def do_before_save(self, model):
            type(self).calls.append(("do_before_save", model.model_copy()))
            model.first_name = "b4 save"

        def do_after_save(self, model):
            type(self).calls.append(("do_after_save", model.model_copy()))
            model.first_name = "after save"

        def do_around_save(self, model, proceed):
            type(self).calls.append(("do_around_save", model.model_copy()))
            model.first_name = "b4 yield"
            saved = proceed()
            saved.first_name = "after yield"

        def do_before_destroy(self, model):
            model.first_name = "updated b4 destroy"
            type(self).calls.append(("do_before_destroy", model.model_copy()))

        def do_after_destroy(self, model):
            model.first_name = "updated after destroy"
            type(self).calls.append(("do_after_destroy", model.model_copy()))

        def do_around_destroy(self, model, proceed):
            model.first_name = "updated b4 destroy"
            type(self).calls.append(("do_around_destroy", model.model_copy()))
            if self.get_adapter().find(Employee, model.id) is None:
                raise RuntimeError("record vanished before proceed")
            proceed()
            if self.get_adapter().find(Employee, model.id) is not None:
                raise RuntimeError("record still stored after proceed")

    EmployeeResource.adapter = adapter
    EmployeeResource.attribute("first_name", "string")
    EmployeeResource.attribute("last_name", "string")
    EmployeeResource.attribute("age", "string")
    return EmployeeResource


@pytest.fixture
def employee_resource(adapter):
    return make_employee_resource(adapter)


@pytest.fixture
def position_resource(adapter):
    class PositionResource(Resource):
        model = Position

    PositionResource.adapter = adapter
    PositionResource.attribute("employee_id", "integer", only=["writable"])
    PositionResource.attribute("title", "string")
    return PositionResource


@pytest.fixture
def department_resource(adapter):
    class DepartmentResource(Resource):
        model = Department

    DepartmentResource.adapter = adapter
    DepartmentResource.attribute("name", "string")
    return DepartmentResource


@pytest.fixture
def classification_resource(adapter):
    class ClassificationResource(Resource):
        model = Classification

    ClassificationResource.adapter = adapter
    ClassificationResource.attribute("description", "string")
    return ClassificationResource


@pytest.fixture
def bio_resource(adapter):
    class BioResource(Resource):
        model = Bio

    BioResource.adapter = adapter
    BioResource.attribute("employee_id", "integer", only=["writable"])
    BioResource.attribute("text", "string")
    return BioResource


@pytest.fixture
def team_resource(adapter):
    class TeamResource(Resource):
        model = Team

    TeamResource.adapter = adapter
    TeamResource.attribute("name", "string")
    return TeamResource


@pytest.fixture
def visa_resource(adapter):
    class VisaResource(Resource):
        type = "visas"
        model = Visa

    VisaResource.adapter = adapter
    VisaResource.attribute("number", "integer")
    return VisaResource


@pytest.fixture
def payload():
    return {
        "data": {
            "type": "employees",
            "attributes": {"first_name": "Jane"},
        }
    }
