"""App 实体单元测试：保存时不变式与配置变更事件"""

import pytest

from apprunner.domain.entities.app import App, check_no_override
from apprunner.domain.entities.input import Input
from apprunner.domain.entities.resource import HttpResourceConfig, Resource
from apprunner.domain.entities.sql_query_config import SqlQueryConfig
from apprunner.domain.events.app_events import APP_CREATED, APP_UPDATED
from apprunner.domain.exceptions import ValidationError
from apprunner.domain.services.secret_redactor import REDACTED
from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.key_value import KeyValuePair


def _create(resource: Resource, **overrides) -> App:
    config = {
        "folder_id": "folder-1",
        "resource": resource,
        "name": "Lookup",
        "actor_user_id": "builder-1",
    }
    config.update(overrides)
    return App.create(**config)


class TestCreate:
    def test_create_records_app_created_event(self, http_resource):
        app = _create(
            http_resource,
            inputs=[Input.create(title="userId", required=True)],
            url_path="/users/{{input.userId}}",
            http_method="post",
        )

        assert app.resource_id == http_resource.id
        assert app.http_method is HttpMethod.POST
        assert len(app.uncommitted_events) == 1
        event = app.uncommitted_events[0]
        assert event.event_type == APP_CREATED
        assert event.entity_id == app.id
        assert event.actor_user_id == "builder-1"
        assert event.payload["app"]["url_path"] == "/users/{{input.userId}}"

    def test_header_override_is_rejected(self):
        """Given: Resource 固定 X-Custom: fixed
        When: App 声明 X-Custom: {{input.token}}
        Then: 保存失败，no-override violation"""
        resource = Resource.create_http(
            space_id="s",
            name="Svc",
            base_url="https://svc.example.com",
            headers=[KeyValuePair("X-Custom", "fixed")],
        )

        with pytest.raises(ValidationError, match="no-override violation"):
            _create(
                resource,
                inputs=[Input.create(title="token", type="secret")],
                headers=[KeyValuePair("X-Custom", "{{input.token}}")],
            )

    def test_header_override_check_ignores_case(self, http_resource):
        with pytest.raises(ValidationError, match="no-override violation"):
            _create(http_resource, headers=[KeyValuePair("AUTHORIZATION", "Basic x")])

    def test_query_param_override_is_case_sensitive(self, http_resource):
        app = _create(http_resource, url_parameters=[KeyValuePair("API_VERSION", "3")])

        assert app.url_parameters == (KeyValuePair("API_VERSION", "3"),)

    def test_undeclared_input_reference_is_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="userID"):
            _create(
                http_resource,
                inputs=[Input.create(title="userId")],
                url_path="/users/{{input.userID}}",
            )

    def test_duplicate_input_titles_are_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="重复"):
            _create(http_resource, inputs=[Input.create(title="a"), Input.create(title="a")])

    def test_select_without_options_is_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="可选项"):
            _create(http_resource, inputs=[Input.create(title="region", type="select")])

    def test_invalid_default_value_is_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="limit"):
            _create(
                http_resource,
                inputs=[Input.create(title="limit", type="integer", default_value="many")],
            )

    def test_unknown_http_method_is_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="HTTP 方法"):
            _create(http_resource, http_method="TRACE")

    def test_empty_name_is_rejected(self, http_resource):
        with pytest.raises(ValidationError, match="name"):
            _create(http_resource, name="  ")

    def test_dynamic_body_excludes_key_value_body(self, http_resource):
        with pytest.raises(ValidationError, match="动态 JSON 请求体"):
            _create(
                http_resource,
                use_dynamic_json_body=True,
                body=[KeyValuePair("a", "1")],
            )

    def test_http_resource_rejects_sql_config(self, http_resource):
        with pytest.raises(ValidationError, match="SQL"):
            _create(http_resource, sql_config=SqlQueryConfig.raw("SELECT 1"))

    def test_sql_resource_requires_sql_config(self, sql_resource):
        with pytest.raises(ValidationError, match="SQL"):
            _create(sql_resource)

    def test_raw_sql_must_be_read_only(self, sql_resource):
        with pytest.raises(ValidationError, match="只读"):
            _create(sql_resource, sql_config=SqlQueryConfig.raw("DELETE FROM orders"))

    def test_raw_sql_must_not_contain_placeholders(self, sql_resource):
        with pytest.raises(ValidationError, match="占位符"):
            _create(
                sql_resource,
                inputs=[Input.create(title="id")],
                sql_config=SqlQueryConfig.raw("SELECT * FROM t WHERE id = {{input.id}}"),
            )


class TestUpdate:
    def test_update_appends_event_with_changed_fields(self, http_resource):
        app = _create(http_resource).mark_events_committed()

        updated = app.update(
            resource=http_resource,
            actor_user_id="builder-2",
            name="Lookup v2",
            url_path="/v2/users",
        )

        assert updated.id == app.id
        assert updated.created_at == app.created_at
        assert len(updated.uncommitted_events) == 1
        event = updated.uncommitted_events[0]
        assert event.event_type == APP_UPDATED
        assert event.actor_user_id == "builder-2"
        assert event.payload["changed_fields"] == ["name", "url_path"]

    def test_update_revalidates_against_resource(self, http_resource):
        app = _create(http_resource)

        with pytest.raises(ValidationError, match="no-override violation"):
            app.update(
                resource=http_resource,
                actor_user_id="builder-1",
                name="Lookup",
                url_parameters=[KeyValuePair("api_version", "3")],
            )


def test_public_dict_masks_credential_values(http_resource):
    app = _create(http_resource, headers=[KeyValuePair("X-Api-Key", "key-123")])

    public = app.to_public_dict()

    assert public["headers"] == [{"key": "X-Api-Key", "value": REDACTED}]
    assert app.headers[0].value == "key-123"
    assert app.uncommitted_events[0].payload["app"]["headers"][0]["value"] == REDACTED


def test_check_no_override_reports_body_conflicts():
    config = HttpResourceConfig(
        base_url="https://x.example.com", body=(KeyValuePair("tenant", "acme"),)
    )

    with pytest.raises(ValidationError, match="body"):
        check_no_override(config, [], [], [KeyValuePair("tenant", "other")])
