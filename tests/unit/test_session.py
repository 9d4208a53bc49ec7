"""Unit tests for the template editing session."""
import json

import pytest

from messagelab.core.models import FieldMode, ListScope, Preset, PresetField, PresetLoop, PresetRelation
from messagelab.session import StatusMessage, TemplateSession

REF_RELATION = "order/@id::order/customer/ref::exact"


@pytest.fixture
def session(generator_config, order_xml):
    session = TemplateSession(generator_config)
    session.load_upload("order.xml", order_xml)
    return session


class TestStatusMessage:
    def test_text(self):
        assert StatusMessage(True, "fileLoaded", "a.xml").text == "fileLoaded (a.xml)"
        assert StatusMessage(False, "noTemplate").text == "noTemplate"


class TestLoading:
    """Test upload, edit and template activation."""

    def test_load_upload(self, session):
        assert session.is_loaded
        assert session.status.ok
        assert session.status.key == "fileLoaded"
        assert session.format.value == "xml"
        assert len(session.fields) == 7
        assert session.loop("order/items/item").count == 3

    def test_failed_upload_keeps_previous_state(self, session):
        status = session.load_upload("broken.xml", "<order>")
        assert not status.ok
        assert status.key == "xmlParse"
        assert session.file_name == "order.xml"
        assert len(session.fields) == 7

    def test_csv_upload_keeps_delimiter(self, generator_config):
        session = TemplateSession(generator_config)
        session.load_upload("people.csv", "id,name\n1,Alice\n")
        assert session.csv_delimiter == ","

    def test_commit_edit(self, session):
        status = session.commit_edit("<order><id>5</id></order>")
        assert status.ok
        assert [f.id for f in session.fields] == ["order/id"]
        assert session.loops == []

    def test_malformed_edit_is_rejected(self, session):
        status = session.commit_edit("<order>")
        assert not status.ok
        assert len(session.fields) == 7

    def test_template_round_trip(self, session, generator_config):
        session.update_field("order/created", mode="increment", step=2)
        session.update_loop("order/items/item", 1)
        payload = session.to_template(name=" Orders ")
        assert payload.id == "Orders"
        assert payload.name == "Orders"

        other = TemplateSession(generator_config)
        status = other.load_template(payload)
        assert status.ok
        assert other.template_id == "Orders"
        assert other.field("order/created").mode == FieldMode.INCREMENT
        assert other.loop("order/items/item").count == 1

    def test_template_id_falls_back_to_timestamp(self, session):
        assert session.to_template().id.startswith("template-")

    def test_hand_added_loop_survives_reload(self, session, generator_config):
        session.add_loop_at("order/customer")
        payload = session.to_template(name="t")

        other = TemplateSession(generator_config)
        other.load_template(payload)
        assert other.loop("order/customer").count == 2
        assert "order/customer[]" in other.paths()
        outcome = other.generate(1)
        assert outcome.documents[0].content.decode("utf-8").count("<customer>") == 2


class TestFieldEditing:
    """Test field updates."""

    def test_update_field(self, session):
        status = session.update_field("order/items/item/qty", mode="random", length=3)
        assert status.ok
        field = session.field("order/items/item[]/qty")
        assert field.mode == FieldMode.RANDOM
        assert field.length == 3
        assert session.changed_fields() == [field]

    def test_unknown_field(self, session):
        assert session.update_field("order/nope", mode="fixed").key == "fieldNotFound"

    def test_non_editable_attribute(self, session):
        assert session.update_field("order/created", kind="text").key == "fieldAttributeNotEditable"

    def test_invalid_mode(self, session):
        assert session.update_field("order/created", mode="shuffle").key == "invalidMode"

    def test_mode_not_allowed_for_kind(self, generator_config, order_json):
        session = TemplateSession(generator_config)
        session.load_upload("order.json", order_json)
        assert session.update_field("root/paid", mode="increment").key == "modeNotAllowed"
        assert session.update_field("root/note", mode="fixed").key == "modeNotAllowed"

    def test_invalid_value(self, session):
        assert session.update_field("order/created", step="fast").key == "invalidFieldSetting"

    def test_global_list_resizes_loop(self, session):
        session.set_file_count(2)
        session.update_field(
            "order/items/item[]/@sku",
            mode="list",
            list_text="\n".join(f"S{n}" for n in range(10)),
            list_scope=ListScope.GLOBAL,
        )
        assert session.loop("order/items/item").count == 5


class TestLoopEditing:
    """Test loop counts and manual loops."""

    def test_update_loop_is_clamped(self, session):
        session.update_loop("order/items/item", 0)
        assert session.loop("order/items/item").count == 1
        assert session.update_loop("order/nope", 2).key == "loopNotFound"

    def test_adjust_loop_count(self, session):
        session.adjust_loop_count("order/items/item", 2)
        assert session.loop("order/items/item").count == 5

    def test_add_loop_rekeys_fields_and_relations(self, session):
        status = session.add_loop_at("order/customer")
        assert status.ok
        assert session.loop("order/customer").count == 2
        ids = [f.id for f in session.fields]
        assert "order/customer[]/name" in ids
        rel = session.relations[0]
        assert rel.dependent_id == "order/customer[]/ref"
        assert rel.id == "order/@id::order/customer[]/ref::exact"

    def test_add_loop_on_existing_loop_increments(self, session):
        session.add_loop_at("order/items/item[]")
        assert session.loop("order/items/item").count == 4

    def test_root_cannot_repeat(self, session):
        assert session.add_loop_at("order").key == "rootCannotRepeat"

    def test_remove_loop(self, session):
        status = session.remove_loop_at("order/items/item[]")
        assert status.ok
        assert session.loops == []
        assert "order/items/item/qty" in [f.id for f in session.fields]
        text = session.generate(1).documents[0].content.decode("utf-8")
        assert text.count("<item ") == 1

    def test_remove_non_loop(self, session):
        assert session.remove_loop_at("order/customer").key == "notALoop"
        assert session.remove_loop_at("order/missing").key == "pathNotFound"

    def test_loops_are_xml_only(self, generator_config, order_json):
        session = TemplateSession(generator_config)
        session.load_upload("order.json", order_json)
        assert session.add_loop_at("root/orderId").key == "loopsXmlOnly"


class TestRelationsAndPresets:
    """Test relation edits and preset snapshots."""

    def test_relation_affixes_show_in_output(self, session):
        session.update_relation(REF_RELATION, prefix="REF-")
        text = session.generate(1).documents[0].content.decode("utf-8")
        assert "<ref>REF-ORD-1001</ref>" in text

    def test_disable_relation(self, session):
        session.update_field("order/@id", mode="fixed", fixed_value="NEW")
        session.set_relation_enabled(REF_RELATION, False)
        text = session.generate(1).documents[0].content.decode("utf-8")
        assert "<ref>ORD-1001</ref>" in text

    def test_unknown_relation(self, session):
        assert session.set_relation_enabled("x", True).key == "relationNotFound"

    def test_preset_round_trip(self, session, order_xml, generator_config):
        session.update_field("order/created", mode="increment")
        session.update_loop("order/items/item", 2)
        session.update_relation(REF_RELATION, suffix="-X")
        preset = session.to_preset(" Nightly ")
        assert preset.id.startswith("preset-")
        assert preset.name == "Nightly"
        assert [f.id for f in preset.fields] == ["order/created"]

        fresh = TemplateSession(generator_config)
        fresh.load_upload("order.xml", order_xml)
        status = fresh.apply_preset(Preset.model_validate(json.loads(json.dumps(preset.to_dict()))))
        assert status.ok
        assert fresh.field("order/created").mode == FieldMode.INCREMENT
        assert fresh.loop("order/items/item").count == 2
        assert fresh.relation(REF_RELATION).suffix == "-X"

    def test_preset_ignores_unknown_ids(self, session):
        preset = Preset(
            id="p",
            name="p",
            fields=[PresetField(id="order/gone", mode="fixed")],
            loops=[PresetLoop(id="order/gone", count=9)],
            relations=[PresetRelation(id="gone", enabled=False)],
        )
        assert session.apply_preset(preset).ok
        assert session.changed_fields() == []


class TestGeneration:
    """Test generation from the session."""

    def test_generate_without_template(self, generator_config):
        outcome = TemplateSession(generator_config).generate()
        assert not outcome.ok
        assert outcome.error_kind == "noTemplate"

    def test_generate_uses_file_name_stem(self, session):
        outcome = session.generate(2)
        assert [d.name for d in outcome.documents] == ["order_1.xml", "order_2.xml"]
        assert session.status.key == "generated"

    def test_failure_reports_field(self, session):
        session.update_field("order/items/item[]/qty", mode="random", length=0, min=1, max=2)
        outcome = session.generate(1)
        assert not outcome.ok
        assert session.status.key == "uniqueValuesExhausted"
        assert session.status.detail == "order/items/item[]/qty"

    def test_set_file_count(self, session):
        session.set_file_count("x")
        assert session.file_count == 1
        session.set_file_count(-5)
        assert session.file_count == 1
        session.set_file_count(7)
        assert session.file_count == 7
