"""
Ontology Store Tests

Entity lifecycle, relations and filters, all served from the replayed
event log.
"""

import pytest

from jarvis.contracts.base import ConflictError, NotFoundError, ValidationError
from jarvis.contracts.events import CreateRecord, Entity, UpdateRecord
from jarvis.ontology import SEED_ENTITIES, OntologyStore, seed_if_empty
from jarvis.storage import FileRecordStore
from jarvis.temporal.event_log import EventLog


class TickingNow:
    """Deterministic ISO timestamps, one per call."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return f"2026-01-01T00:00:{self.calls:02d}Z"


@pytest.fixture
def ticking_ontology(memory_log):
    return OntologyStore(memory_log, now=TickingNow())


# =============================================================================
# ENTITY LIFECYCLE
# =============================================================================

class TestEntityLifecycle:

    def test_round_trip(self, ontology):
        created = ontology.create_entity("Person", {"name": "Ada"})
        fetched = ontology.get_entity(created.id)

        assert fetched.type == "Person"
        assert fetched.properties["name"] == "Ada"
        assert fetched.created == fetched.updated
        assert fetched == created

    def test_id_is_lowercased_type_with_suffix(self, ontology):
        entity = ontology.create_entity("Project", {})
        prefix, suffix = entity.id.split("_", 1)

        assert prefix == "project"
        assert len(suffix) == 8

    def test_ids_do_not_collide(self, ontology):
        ids = {ontology.create_entity("Task", {"n": i}).id for i in range(200)}
        assert len(ids) == 200

    def test_update_merges_shallowly(self, ticking_ontology):
        entity = ticking_ontology.create_entity("Project", {"name": "Lead Gen", "status": "planning"})
        updated = ticking_ontology.update_entity(entity.id, {"status": "active", "budget": 10})

        assert updated.properties == {"name": "Lead Gen", "status": "active", "budget": 10}
        assert updated.created == entity.created
        assert updated.updated != entity.updated
        assert ticking_ontology.get_entity(entity.id) == updated

    def test_nested_values_are_replaced_not_merged(self, ontology):
        entity = ontology.create_entity("Project", {"meta": {"a": 1, "b": 2}})
        updated = ontology.update_entity(entity.id, {"meta": {"a": 3}})

        assert updated.properties["meta"] == {"a": 3}

    def test_repeated_update_is_idempotent_in_value_not_in_log(self, ontology):
        entity = ontology.create_entity("Project", {"k": "old"})
        before = len(ontology.log)

        ontology.update_entity(entity.id, {"k": "v"})
        ontology.update_entity(entity.id, {"k": "v"})

        assert ontology.get_entity(entity.id).properties["k"] == "v"
        assert len(ontology.log) == before + 2

    def test_update_unknown_entity(self, ontology):
        with pytest.raises(NotFoundError):
            ontology.update_entity("project_missing", {"k": "v"})

    def test_delete_is_final(self, ontology):
        entity = ontology.create_entity("Project", {"status": "planning"})
        ontology.delete_entity(entity.id)

        with pytest.raises(NotFoundError):
            ontology.get_entity(entity.id)
        with pytest.raises(NotFoundError):
            ontology.update_entity(entity.id, {"status": "active"})
        with pytest.raises(NotFoundError):
            ontology.delete_entity(entity.id)

        assert ontology.query(entity_type="Project") == []

    def test_delete_keeps_history(self, ontology):
        entity = ontology.create_entity("Project", {})
        ontology.update_entity(entity.id, {"k": 1})
        ontology.delete_entity(entity.id)

        ops = [r.op.value for r in ontology.log.read_all()]
        assert ops == ["create", "update", "delete"]

    def test_update_log_record_carries_full_entity(self, ontology):
        entity = ontology.create_entity("Project", {"a": 1})
        ontology.update_entity(entity.id, {"b": 2})

        last = ontology.log.read_all()[-1]
        assert isinstance(last, UpdateRecord)
        assert last.entity.properties == {"a": 1, "b": 2}


# =============================================================================
# VALIDATION
# =============================================================================

class TestValidation:

    @pytest.mark.parametrize("entity_type, properties", [
        (None, {"name": "x"}),
        ("", {"name": "x"}),
        ("Person", None),
        ("Person", "not a mapping"),
        (42, {}),
    ])
    def test_create_rejects_missing_fields(self, ontology, entity_type, properties):
        with pytest.raises(ValidationError):
            ontology.create_entity(entity_type, properties)
        assert len(ontology.log) == 0

    @pytest.mark.parametrize("source, rel, target", [
        (None, "has_owner", "pers_1"),
        ("proj_1", "", "pers_1"),
        ("proj_1", "has_owner", None),
    ])
    def test_relation_requires_all_endpoints(self, ontology, source, rel, target):
        with pytest.raises(ValidationError):
            ontology.create_relation(source, rel, target)

    def test_whitespace_type_is_not_empty(self, ontology):
        assert ontology.create_entity(" ", {}).type == " "

    def test_update_rejects_non_mapping(self, ontology):
        entity = ontology.create_entity("Person", {})
        with pytest.raises(ValidationError):
            ontology.update_entity(entity.id, ["name", "x"])

    def test_query_rejects_non_mapping_where(self, ontology):
        with pytest.raises(ValidationError):
            ontology.query(where="status=active")


# =============================================================================
# OPTIMISTIC CONCURRENCY
# =============================================================================

class TestExpectedUpdated:

    def test_matching_version_applies(self, ticking_ontology):
        entity = ticking_ontology.create_entity("Project", {"k": 1})
        updated = ticking_ontology.update_entity(entity.id, {"k": 2}, expected_updated=entity.updated)
        assert updated.properties["k"] == 2

    def test_stale_version_conflicts_without_appending(self, ticking_ontology):
        entity = ticking_ontology.create_entity("Project", {"k": 1})
        ticking_ontology.update_entity(entity.id, {"k": 2})
        before = len(ticking_ontology.log)

        with pytest.raises(ConflictError) as exc_info:
            ticking_ontology.update_entity(entity.id, {"k": 3}, expected_updated=entity.updated)

        assert exc_info.value.expected == entity.updated
        assert len(ticking_ontology.log) == before
        assert ticking_ontology.get_entity(entity.id).properties["k"] == 2


# =============================================================================
# QUERIES
# =============================================================================

class TestQuery:

    def test_status_scenario(self, memory_log):
        """Create then update proj_1; only the current status matches."""
        ontology = OntologyStore(memory_log)
        created = Entity(
            id="proj_1", type="Project", properties={"status": "planning"},
            created="2026-01-01T00:00:00Z", updated="2026-01-01T00:00:00Z",
        )
        memory_log.append(CreateRecord(entity=created, timestamp=created.created))
        ontology.update_entity("proj_1", {"status": "active"})

        active = ontology.query(entity_type="Project", where={"status": "active"})
        planning = ontology.query(entity_type="Project", where={"status": "planning"})

        assert [e.id for e in active] == ["proj_1"]
        assert planning == []

    def test_type_filter_is_exact(self, ontology):
        ontology.create_entity("Project", {})
        ontology.create_entity("project", {})
        ontology.create_entity("Person", {})

        assert [e.type for e in ontology.query(entity_type="Project")] == ["Project"]

    def test_missing_key_never_matches(self, ontology):
        ontology.create_entity("Task", {"owner": None})
        ontology.create_entity("Task", {})

        matches = ontology.query(where={"owner": None})
        assert len(matches) == 1
        assert matches[0].properties == {"owner": None}

    def test_no_filters_returns_all_live(self, ontology):
        a = ontology.create_entity("Task", {})
        b = ontology.create_entity("Task", {})
        ontology.delete_entity(a.id)

        assert [e.id for e in ontology.query()] == [b.id]

    def test_equality_is_type_sensitive(self, ontology):
        ontology.create_entity("Task", {"priority": 1})
        assert ontology.query(where={"priority": "1"}) == []
        assert len(ontology.query(where={"priority": 1})) == 1

    @pytest.mark.parametrize("stored, queried", [
        (1, True),
        (0, False),
        (True, 1),
        ({"done": 1}, {"done": True}),
        ([1, 0], [True, False]),
    ])
    def test_booleans_never_match_numbers(self, ontology, stored, queried):
        ontology.create_entity("Task", {"done": stored})
        assert ontology.query(where={"done": queried}) == []

    def test_integral_float_matches_int(self, ontology):
        ontology.create_entity("Task", {"estimate": 2})
        assert len(ontology.query(where={"estimate": 2.0})) == 1

    def test_nested_values_match_structurally(self, ontology):
        ontology.create_entity("Task", {"meta": {"tags": ["a", "b"], "done": False}})
        assert len(ontology.query(where={"meta": {"done": False, "tags": ["a", "b"]}})) == 1
        assert ontology.query(where={"meta": {"done": False}}) == []


# =============================================================================
# READ ISOLATION
# =============================================================================

class TestReadIsolation:
    """Mutating a returned object never changes what the log folds to."""

    def test_mutating_fetched_entity(self, ontology):
        entity = ontology.create_entity("Task", {"k": "v", "meta": {"n": 1}})

        fetched = ontology.get_entity(entity.id)
        fetched.properties["k"] = "tampered"
        fetched.properties["meta"]["n"] = 99

        again = ontology.get_entity(entity.id)
        assert again.properties == {"k": "v", "meta": {"n": 1}}

    def test_mutating_query_results(self, ontology):
        ontology.create_entity("Task", {"k": "v"})

        ontology.query(entity_type="Task")[0].properties["k"] = "tampered"

        assert ontology.query(where={"k": "v"})[0].properties["k"] == "v"

    def test_mutating_state_and_full_view(self, ontology):
        entity = ontology.create_entity("Task", {"k": "v"})
        ontology.create_relation(entity.id, "blocks", "task_2", {"w": 1})
        before = ontology.state_hash()

        ontology.state().entities[0].properties["k"] = "tampered"
        ontology.list_all()["entities"][0]["properties"]["k"] = "tampered"
        ontology.get_related(entity.id)[0].properties["w"] = 2

        assert ontology.state_hash() == before
        assert ontology.get_entity(entity.id).properties["k"] == "v"


# =============================================================================
# RELATIONS
# =============================================================================

class TestRelations:

    def test_relations_may_dangle(self, ontology):
        relation = ontology.create_relation("proj_x", "has_owner", "pers_y")
        assert relation.to_dict()["from"] == "proj_x"
        assert ontology.get_related("pers_y") == [relation]

    def test_get_related_matches_both_ends_in_log_order(self, ontology):
        r1 = ontology.create_relation("proj_1", "has_owner", "pers_1")
        ontology.create_relation("proj_2", "has_owner", "pers_2")
        r3 = ontology.create_relation("pers_1", "works_on", "proj_3", {"since": "2024"})

        assert ontology.get_related("pers_1") == [r1, r3]
        assert ontology.get_related("pers_1", rel="works_on") == [r3]
        assert ontology.get_related("nobody") == []

    def test_duplicate_relations_accumulate(self, ontology):
        ontology.create_relation("a_1", "knows", "b_1")
        ontology.create_relation("a_1", "knows", "b_1")

        assert len(ontology.list_all()["relations"]) == 2

    def test_relations_survive_entity_deletion(self, ontology):
        entity = ontology.create_entity("Project", {})
        ontology.create_relation(entity.id, "has_owner", "pers_1")
        ontology.delete_entity(entity.id)

        assert len(ontology.get_related(entity.id)) == 1


# =============================================================================
# FULL VIEW & SEEDING
# =============================================================================

class TestListAllAndSeed:

    def test_list_all_excludes_deleted_and_deduplicates(self, ontology):
        keep = ontology.create_entity("Person", {"name": "Ada"})
        gone = ontology.create_entity("Person", {"name": "Bob"})
        ontology.update_entity(keep.id, {"role": "owner"})
        ontology.update_entity(keep.id, {"role": "admin"})
        ontology.delete_entity(gone.id)

        view = ontology.list_all()

        assert [e["id"] for e in view["entities"]] == [keep.id]
        assert view["entities"][0]["properties"] == {"name": "Ada", "role": "admin"}
        assert view["relations"] == []

    def test_seed_only_when_empty(self, ontology):
        assert seed_if_empty(ontology) is True
        assert seed_if_empty(ontology) is False

        view = ontology.list_all()
        assert [e["id"] for e in view["entities"]] == [s[0] for s in SEED_ENTITIES]
        assert view["relations"][0]["from"] == "proj_re_leadgen"
        assert view["relations"][0]["to"] == "pers_dawid"

    def test_seed_skipped_for_existing_log(self, ontology):
        ontology.create_entity("Person", {"name": "Ada"})
        assert seed_if_empty(ontology) is False

    def test_state_rebuilt_from_disk(self, tmp_path):
        path = str(tmp_path / "ontology.jsonl")
        first = OntologyStore(EventLog(FileRecordStore(path)))
        entity = first.create_entity("Person", {"name": "Ada"})
        first.update_entity(entity.id, {"name": "Ada Lovelace"})
        first.create_relation(entity.id, "knows", "pers_babbage")

        second = OntologyStore(EventLog(FileRecordStore(path)))

        assert second.list_all() == first.list_all()
        assert second.state_hash() == first.state_hash()
        assert second.verify_determinism() == (True, None)
