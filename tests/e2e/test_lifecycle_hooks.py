"""
Lifecycle Hook Tests

Drives create, update and destroy through Resource.build / Resource.find
and checks when each hook fires and what it can change.
"""

import pytest

from sidepost import AroundCallbackError, HookError

from conftest import Employee


def create(resource, payload):
    proxy = resource.build(payload)
    proxy.save()
    return proxy.data


def update(resource, payload):
    employee = resource.adapter.create(Employee)
    payload["data"]["id"] = employee.id
    proxy = resource.find(payload)
    proxy.update_attributes()
    return proxy.data


def destroy(resource, payload):
    employee = resource.adapter.create(Employee)
    payload["data"]["id"] = employee.id
    proxy = resource.find(payload)
    proxy.destroy()
    return proxy.data


def reload(resource, employee):
    return resource.adapter.find(Employee, employee.id)


class TestBeforeAttributes:

    @pytest.fixture(params=["method", "function", "decorator"])
    def resource(self, request, employee_resource):
        if request.param == "method":
            employee_resource.before_attributes("do_before_attributes")
        elif request.param == "function":
            employee_resource.before_attributes(
                lambda resource, attributes: resource.do_before_attributes(attributes)
            )
        else:
            @employee_resource.before_attributes()
            def rename(resource, attributes):
                resource.do_before_attributes(attributes)
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_attributes(self, resource, payload, action):
        action(resource, payload)
        assert resource.calls == [("do_before_attributes", {"first_name": "Jane"})]

    @pytest.mark.parametrize("action", [create, update])
    def test_can_modify_attributes(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.last_name == "Jane"
        assert employee.first_name is None

    def test_not_fired_on_destroy(self, resource, payload):
        destroy(resource, payload)
        assert resource.calls == []

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.before_attributes("do_before_attributes", only=["update"])

        create(employee_resource, payload)
        assert employee_resource.calls == []

        update(employee_resource, {"data": {"type": "employees", "attributes": {"first_name": "Jane"}}})
        assert len(employee_resource.calls) == 1


class TestAfterAttributes:

    @pytest.fixture(params=["method", "function"])
    def resource(self, request, employee_resource):
        if request.param == "method":
            employee_resource.after_attributes("do_after_attributes")
        else:
            employee_resource.after_attributes(lambda resource, model: resource.do_after_attributes(model))
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_model(self, resource, payload, action):
        action(resource, payload)
        name, model = resource.calls[0]
        assert name == "do_after_attributes"
        assert isinstance(model, Employee)
        assert model.first_name == "Jane"

    @pytest.mark.parametrize("action", [create, update])
    def test_can_modify_model(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.last_name == "Jane"
        assert reload(resource, employee).last_name == "Jane"

    def test_not_fired_on_destroy(self, resource, payload):
        destroy(resource, payload)
        assert resource.calls == []

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.after_attributes("do_after_attributes", only=["update"])
        create(employee_resource, payload)
        assert employee_resource.calls == []


class TestAroundAttributes:

    @pytest.fixture
    def resource(self, employee_resource):
        employee_resource.around_attributes("do_around_attributes")
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_attributes(self, resource, payload, action):
        action(resource, payload)
        assert resource.calls == [("do_around_attributes", {"first_name": "Jane"})]

    @pytest.mark.parametrize("action", [create, update])
    def test_can_modify_attributes_and_model(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.last_name == "Jane"
        assert employee.first_name == "after yield"

    def test_function_with_continuation(self, employee_resource, payload):
        def wrap(resource, attributes, proceed):
            attributes["age"] = "40"
            proceed()

        employee_resource.around_attributes(wrap)
        assert create(employee_resource, payload).age == "40"

    def test_lambda_rejected(self, employee_resource):
        with pytest.raises(AroundCallbackError, match="around_attributes"):
            employee_resource.around_attributes(lambda resource, attributes, proceed: "dontgethere")

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.around_attributes("do_around_attributes", only=["update"])

        create(employee_resource, payload)
        assert employee_resource.calls == []

        employee = update(employee_resource, {"data": {"type": "employees", "attributes": {"first_name": "Jane"}}})
        assert employee.first_name == "after yield"


class TestBeforeSave:

    @pytest.fixture(params=["method", "function"])
    def resource(self, request, employee_resource):
        if request.param == "method":
            employee_resource.before_save("do_before_save")
        else:
            employee_resource.before_save(lambda resource, model: resource.do_before_save(model))
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_model(self, resource, payload, action):
        action(resource, payload)
        name, model = resource.calls[0]
        assert isinstance(model, Employee)
        assert model.first_name == "Jane"

    @pytest.mark.parametrize("action", [create, update])
    def test_changes_are_persisted(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.first_name == "b4 save"
        assert reload(resource, employee).first_name == "b4 save"

    def test_not_fired_on_destroy(self, resource, payload):
        destroy(resource, payload)
        assert resource.calls == []

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.before_save("do_before_save", only=["update"])
        assert create(employee_resource, payload).first_name == "Jane"
        assert employee_resource.calls == []


class TestAfterSave:

    @pytest.fixture(params=["method", "function"])
    def resource(self, request, employee_resource):
        if request.param == "method":
            employee_resource.after_save("do_after_save")
        else:
            employee_resource.after_save(lambda resource, model: resource.do_after_save(model))
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_saved_model(self, resource, payload, action):
        action(resource, payload)
        name, model = resource.calls[0]
        assert isinstance(model, Employee)
        assert model.id is not None

    @pytest.mark.parametrize("action", [create, update])
    def test_changes_are_not_persisted(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.first_name == "after save"
        assert reload(resource, employee).first_name == "Jane"

    def test_not_fired_on_destroy(self, resource, payload):
        destroy(resource, payload)
        assert resource.calls == []

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.after_save("do_after_save", only=["update"])
        create(employee_resource, payload)
        assert employee_resource.calls == []


class TestAroundSave:

    @pytest.fixture
    def resource(self, employee_resource):
        employee_resource.around_save("do_around_save")
        return employee_resource

    @pytest.mark.parametrize("action", [create, update])
    def test_receives_model(self, resource, payload, action):
        action(resource, payload)
        assert isinstance(resource.calls[0][1], Employee)

    @pytest.mark.parametrize("action", [create, update])
    def test_changes_before_proceed_persist(self, resource, payload, action):
        employee = action(resource, payload)
        assert employee.first_name == "after yield"
        assert reload(resource, employee).first_name == "b4 yield"

    def test_lambda_rejected(self, employee_resource):
        with pytest.raises(AroundCallbackError, match="around_save"):
            employee_resource.around_save(lambda resource, model, proceed: "dontgethere")

    def test_limited_to_update(self, employee_resource, payload):
        employee_resource.around_save("do_around_save", only=["update"])
        assert create(employee_resource, payload).first_name == "Jane"
        assert employee_resource.calls == []

    def test_returned_model_replaces_result(self, employee_resource, payload):
        replacement = Employee(first_name="replaced")

        def swap(resource, model, proceed):
            proceed()
            return replacement

        employee_resource.around_save(swap)
        proxy = employee_resource.build(payload)

        assert proxy.save() is True
        assert proxy.data is replacement
        assert proxy.data.first_name == "replaced"

    def test_proceed_must_be_called(self, employee_resource, payload):
        def swallow(resource, model, proceed):
            return model

        employee_resource.around_save(swallow)
        with pytest.raises(HookError):
            employee_resource.build(payload).save()
        assert employee_resource.adapter.count(Employee) == 0


class TestDestroyHooks:

    @pytest.mark.parametrize("action", [create, update])
    @pytest.mark.parametrize("hook", ["before_destroy", "after_destroy", "around_destroy"])
    def test_not_fired_outside_destroy(self, employee_resource, payload, hook, action):
        getattr(employee_resource, hook)(f"do_{hook}")
        action(employee_resource, payload)
        assert employee_resource.calls == []

    def test_before_destroy(self, employee_resource, payload):
        employee_resource.before_destroy("do_before_destroy")
        employee = destroy(employee_resource, payload)

        name, model = employee_resource.calls[0]
        assert isinstance(model, Employee)
        assert model.first_name == "updated b4 destroy"
        assert reload(employee_resource, employee) is None

    def test_before_destroy_function(self, employee_resource, payload):
        employee_resource.before_destroy(lambda resource, model: resource.do_before_destroy(model))
        destroy(employee_resource, payload)
        assert employee_resource.calls[0][1].first_name == "updated b4 destroy"

    def test_after_destroy(self, employee_resource, payload):
        employee_resource.after_destroy("do_after_destroy")
        employee = destroy(employee_resource, payload)

        assert employee_resource.calls[0][1].first_name == "updated after destroy"
        assert employee.first_name == "updated after destroy"
        assert reload(employee_resource, employee) is None

    def test_around_destroy(self, employee_resource, payload):
        employee_resource.around_destroy("do_around_destroy")
        employee = destroy(employee_resource, payload)

        assert employee_resource.calls[0][1].first_name == "updated b4 destroy"
        assert reload(employee_resource, employee) is None

    def test_around_destroy_lambda_rejected(self, employee_resource):
        with pytest.raises(AroundCallbackError, match="around_destroy"):
            employee_resource.around_destroy(lambda resource, model: "dontgethere")


class TestHookOrdering:

    def test_full_save_sequence(self, employee_resource, payload):
        for hook in ("before_attributes", "after_attributes", "before_save",
                     "around_save", "after_save"):
            getattr(employee_resource, hook)(f"do_{hook}")

        create(employee_resource, payload)

        assert [name for name, _ in employee_resource.calls] == [
            "do_before_attributes",
            "do_after_attributes",
            "do_before_save",
            "do_around_save",
            "do_after_save",
        ]

    def test_hooks_see_resource_context(self, employee_resource, payload):
        seen = []
        employee_resource.before_save(lambda resource, model: seen.append(resource.context))

        employee_resource.build(payload, context={"user": "admin"}).save()

        assert seen == [{"user": "admin"}]
