# type: ignore
"""
Repository and credential tests against the in-memory database.
"""
from datetime import datetime, timedelta, timezone

import pytest

from urgent.core.errors import NotFound, Unauthorized
from urgent.models.domain import Operator, UrgentDraft, UrgentEvent, full_name
from urgent.repositories import UrgentRepository, UserRepository
from urgent.repositories.filters import compile_filters, parse_filters
from urgent.services.credential_verifier import CredentialVerifier

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _draft(unico="LH-148031", machine="MC27", at=T0, **kwargs):
    return UrgentDraft(unico=unico, machine=machine, declared_by="588", declared_at=at, **kwargs)


@pytest.fixture
def repo(engine):
    return UrgentRepository(engine)


@pytest.fixture
def verifier(engine):
    return CredentialVerifier(UserRepository(engine))


# ═══════════════════════════════════════════════════════════════════════════
# URGENTS
# ═══════════════════════════════════════════════════════════════════════════
class TestUrgentRepository:
    async def test_insert_and_read_back(self, repo):
        urgent_id = await repo.insert(_draft(type="CONTROLE", time_remaining=" 30min "))
        row = await repo.get_urgent(urgent_id)
        assert row["id"] == urgent_id
        assert row["status"] == "NOK"
        assert row["type"] == "controle"
        assert row["time_remaining"] == "30min"
        assert row["plan_b"] is False
        assert row["declared_at"].replace(tzinfo=None) == T0.replace(tzinfo=None)
        assert row["declared_by"] == {"matricule": "588", "full_name": "Karim AISSAM", "role": "Opera"}
        assert row["corrected_by"] is None

    async def test_get_missing(self, repo):
        assert await repo.get_urgent(999) is None

    async def test_list_orders_newest_first(self, repo):
        older = await repo.insert(_draft(at=T0))
        newer = await repo.insert(_draft(unico="LH-148032", at=T0 + timedelta(hours=1)))
        same_time = await repo.insert(_draft(unico="LH-200100", at=T0))
        rows = await repo.list_urgents(compile_filters([]))
        assert [r["id"] for r in rows] == [newer, same_time, older]

    async def test_list_with_predicate(self, repo):
        await repo.insert(_draft(machine="MC27"))
        await repo.insert(_draft(unico="LH-148032", machine="mc05"))
        predicate = compile_filters(parse_filters({"machine": "MC05"}))
        rows = await repo.list_urgents(predicate)
        assert [r["unico"] for r in rows] == ["LH-148032"]

    async def test_unknown_declarer_has_no_names(self, repo):
        urgent_id = await repo.insert(UrgentDraft(
            unico="LH-148031", machine="MC27", declared_by="nobody", declared_at=T0,
        ))
        row = await repo.get_urgent(urgent_id)
        assert row["declared_by"] == {"matricule": "nobody", "full_name": None, "role": None}

    async def test_distinct_machines(self, repo):
        for machine in ("mc27", "MC27\t", " MC27 ", "MC05", "-", " ", None):
            await repo.insert(_draft(machine=machine))
        machines = await repo.distinct_machines(compile_filters([]))
        assert machines == ["MC05", "MC27"]

    async def test_find_missing_unicos(self, repo):
        missing = await repo.find_missing_unicos(["LH-148031", "NOPE", " LH-400400", "NOPE", " "])
        assert missing == ["NOPE"]

    async def test_find_missing_unicos_empty(self, repo):
        assert await repo.find_missing_unicos([]) == []

    async def test_plan_b_latest_nok_wins(self, repo):
        older = await repo.insert(_draft(at=T0, machine="MC01"))
        newer = await repo.insert(_draft(at=T0 + timedelta(minutes=5), machine="MC02", type="Coupe"))
        target = await repo.apply_plan_b(" LH-148031 ", "MC09")
        assert target == {"id": newer, "machine": "MC02", "type": "coupe"}
        assert (await repo.get_urgent(newer))["plan_b"] is True
        assert (await repo.get_urgent(older))["plan_b"] is False

    async def test_plan_b_ignores_resolved(self, repo):
        await repo.insert(_draft())
        await repo.resolve("LH-148031", "1935", T0 + timedelta(hours=1))
        with pytest.raises(NotFound):
            await repo.apply_plan_b("LH-148031", "MC09")

    async def test_resolve(self, repo):
        urgent_id = await repo.insert(_draft())
        row = await repo.resolve("LH-148031", "1935", T0 + timedelta(hours=2))
        assert row["id"] == urgent_id
        assert row["status"] == "OK"
        assert row["corrected_by"] == {"matricule": "1935", "full_name": "Sara HANIFA", "role": "Admin"}
        assert row["corrected_at"] is not None

    async def test_resolve_refuses_row_closed_after_lookup(self, repo, monkeypatch):
        urgent_id = await repo.insert(_draft())
        stale = await repo._find_active("LH-148031")
        first = await repo.resolve("LH-148031", "1935", T0 + timedelta(hours=1))

        async def stale_lookup(unico):
            return stale

        monkeypatch.setattr(repo, "_find_active", stale_lookup)
        with pytest.raises(NotFound):
            await repo.resolve("LH-148031", "588", T0 + timedelta(hours=2))

        row = await repo.get_urgent(urgent_id)
        assert row["corrected_by"]["matricule"] == "1935"
        assert row["corrected_at"] == first["corrected_at"]

    async def test_plan_b_refuses_row_closed_after_lookup(self, repo, monkeypatch):
        urgent_id = await repo.insert(_draft())
        stale = await repo._find_active("LH-148031")
        await repo.resolve("LH-148031", "1935", T0 + timedelta(hours=1))

        async def stale_lookup(unico):
            return stale

        monkeypatch.setattr(repo, "_find_active", stale_lookup)
        with pytest.raises(NotFound):
            await repo.apply_plan_b("LH-148031", "MC09")
        assert (await repo.get_urgent(urgent_id))["plan_b"] is False

    async def test_plan_b_can_be_reset(self, repo):
        urgent_id = await repo.insert(_draft())
        await repo.apply_plan_b("LH-148031", "MC09")
        await repo.apply_plan_b("LH-148031", "MC10")
        assert (await repo.get_urgent(urgent_id))["mc_pb"] == "MC10"

    async def test_resolve_walks_back_through_duplicates(self, repo):
        first = await repo.insert(_draft(at=T0))
        second = await repo.insert(_draft(at=T0 + timedelta(minutes=1)))
        assert (await repo.resolve("LH-148031", "1935", T0))["id"] == second
        assert (await repo.resolve("LH-148031", "1935", T0))["id"] == first
        with pytest.raises(NotFound):
            await repo.resolve("LH-148031", "1935", T0)


# ═══════════════════════════════════════════════════════════════════════════
# CREDENTIALS
# ═══════════════════════════════════════════════════════════════════════════
class TestCredentialVerifier:
    async def test_valid(self, verifier):
        operator = await verifier.verify("588", "1234")
        assert operator == Operator("588", "Karim", "AISSAM", "Opera")

    async def test_badge_spaces_and_padding(self, verifier):
        assert (await verifier.verify(" 19 35 ", " abcd ")).matricule == "1935"

    async def test_stored_padding_ignored(self, verifier):
        operator = await verifier.verify("77", "pw77")
        assert operator.matricule == "77"
        assert operator.first_name is None and operator.last_name is None

    async def test_wrong_password(self, verifier):
        with pytest.raises(Unauthorized) as exc:
            await verifier.verify("588", "abcd")
        assert exc.value.message == "Invalid matricule or password."

    async def test_custom_failure_message(self, verifier):
        with pytest.raises(Unauthorized) as exc:
            await verifier.verify("0000", "x", failure_message="Invalid corrector credentials.")
        assert exc.value.to_dict() == {"error": "Invalid corrector credentials."}


# ═══════════════════════════════════════════════════════════════════════════
# DOMAIN
# ═══════════════════════════════════════════════════════════════════════════
class TestDomain:
    def test_full_name(self):
        assert full_name(" Karim ", "AISSAM") == "Karim AISSAM"
        assert full_name(None, "AISSAM") == "AISSAM"
        assert full_name("", "  ") is None

    def test_added_event_payload(self):
        declarer = Operator("588", "Karim", "AISSAM", "Opera")
        row = _draft(type="Coupe").decorate(12, declarer)
        message = UrgentEvent.added(row).to_message()
        assert message == {"event": "urgent:added", "data": {
            "id": 12, "unico": "LH-148031", "machine": "MC27", "type": "coupe",
            "declaredAt": T0.isoformat(), "by": "588",
        }}

    def test_resolved_event_payload(self):
        row = {"id": 3, "unico": "LH-1", "machine": "MC27", "type": None,
               "corrected_at": T0, "corrected_by": {"matricule": "1935"}}
        assert UrgentEvent.resolved(row).payload == {
            "id": 3, "unico": "LH-1", "machine": "MC27", "type": None,
            "correctedAt": T0.isoformat(), "by": "1935",
        }
