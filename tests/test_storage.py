"""
Tests for record storage.

The in-memory store is exercised directly; the hosted store runs
against a mocked requests session, so no test touches the network.
"""

import asyncio
import json
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import requests

from src.config import SupabaseSettings
from src.models.records import Beneficiary, Debt, Will
from src.services.storage import (
    ConnectionError,
    InMemoryRecordStorage,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    SupabaseClient,
    SupabaseRecordStorage,
    error_message_from,
)

USER = uuid4()
OTHER_USER = uuid4()


def make_response(status: int, body=None, text: str = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode()
    else:
        response._content = b"" if body is None else json.dumps(body).encode()
    return response


def make_debt(user_id=USER, **overrides) -> Debt:
    values = dict(
        user_id=user_id,
        nome="Cartão",
        tipo="Cartão",
        credor="Banco",
        valor_original=Decimal("5000.00"),
        saldo_devedor=Decimal("2500.00"),
        valor_parcela=Decimal("500.00"),
        numero_parcelas=10,
        parcelas_pagas=5,
        data_contratacao=date(2024, 1, 5),
    )
    values.update(overrides)
    return Debt(**values)


def make_will(user_id=USER) -> Will:
    return Will(
        user_id=user_id,
        titulo="Testamento",
        tipo="Testamento Público",
        data_elaboracao=date(2024, 3, 1),
    )


def debt_row(**overrides) -> dict:
    row = make_debt().to_row()
    row.update({"id": str(uuid4()), "created_at": "2024-01-05T10:00:00+00:00"})
    row.update(overrides)
    return row


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session) -> SupabaseClient:
    settings = SupabaseSettings(url="https://proj.supabase.co/", anon_key="anon-key")
    return SupabaseClient(settings=settings, session=session, timeout=5)


class TestInMemoryStorage:
    """Tests for the in-memory record store."""

    def test_insert_assigns_id_and_timestamps(self):
        storage = InMemoryRecordStorage()
        stored = asyncio.run(storage.insert(make_debt()))
        assert stored.id is not None
        assert stored.created_at is not None

    def test_reads_are_scoped_to_owner(self):
        storage = InMemoryRecordStorage()

        async def scenario():
            mine = await storage.insert(make_debt())
            await storage.insert(make_debt(user_id=OTHER_USER))
            listed = await storage.list_for_user(Debt, USER)
            other = await storage.get(Debt, mine.id, OTHER_USER)
            return mine, listed, other

        mine, listed, other = asyncio.run(scenario())
        assert [d.id for d in listed] == [mine.id]
        assert other is None

    def test_update(self):
        storage = InMemoryRecordStorage()

        async def scenario():
            stored = await storage.insert(make_debt())
            updated = await storage.update(stored.model_copy(update={"parcelas_pagas": 6}))
            return stored, updated, await storage.get(Debt, stored.id, USER)

        stored, updated, fetched = asyncio.run(scenario())
        assert updated.parcelas_pagas == 6
        assert fetched.parcelas_pagas == 6
        assert updated.created_at == stored.created_at

    def test_update_missing_record(self):
        storage = InMemoryRecordStorage()
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update(make_debt(id=uuid4())))

    def test_delete(self):
        storage = InMemoryRecordStorage()

        async def scenario():
            stored = await storage.insert(make_debt())
            wrong_owner = await storage.delete(Debt, stored.id, OTHER_USER)
            deleted = await storage.delete(Debt, stored.id, USER)
            return wrong_owner, deleted, await storage.list_for_user(Debt, USER)

        wrong_owner, deleted, remaining = asyncio.run(scenario())
        assert wrong_owner is False
        assert deleted is True
        assert remaining == []

    def test_filters_and_order(self):
        storage = InMemoryRecordStorage()

        async def scenario():
            will = await storage.insert(make_will())
            other = await storage.insert(make_will())
            await storage.insert(Beneficiary(testamento_id=will.id, nome="Bruno", cpf="12345678909"))
            await storage.insert(Beneficiary(testamento_id=will.id, nome="Ana", cpf="12345678909"))
            await storage.insert(Beneficiary(testamento_id=other.id, nome="Carla", cpf="12345678909"))
            return await storage.list_for_user(
                Beneficiary, USER,
                filters={"testamento_id": str(will.id)},
                order_by="nome",
                descending=False,
            )

        names = [b.nome for b in asyncio.run(scenario())]
        assert names == ["Ana", "Bruno"]

    def test_heirs_are_scoped_through_their_will(self):
        storage = InMemoryRecordStorage()

        async def scenario():
            will = await storage.insert(make_will())
            heir = await storage.insert(
                Beneficiary(testamento_id=will.id, nome="Ana", cpf="12345678909")
            )
            return will, heir

        will, heir = asyncio.run(scenario())

        assert asyncio.run(storage.list_for_user(Beneficiary, OTHER_USER)) == []
        assert asyncio.run(storage.get(Beneficiary, heir.id, OTHER_USER)) is None
        assert asyncio.run(storage.delete(Beneficiary, heir.id, OTHER_USER)) is False
        assert [b.nome for b in asyncio.run(storage.list_for_user(Beneficiary, USER))] == ["Ana"]

    def test_heir_without_will_is_nobodys(self):
        storage = InMemoryRecordStorage()
        asyncio.run(storage.insert(Beneficiary(testamento_id=uuid4(), nome="Ana", cpf="12345678909")))

        assert asyncio.run(storage.list_for_user(Beneficiary, USER)) == []

    def test_insert_many(self):
        storage = InMemoryRecordStorage()

        stored = asyncio.run(storage.insert_many([make_debt(nome="A"), make_debt(nome="B")]))

        assert [d.nome for d in stored] == ["A", "B"]
        assert all(d.id is not None for d in stored)
        assert len(asyncio.run(storage.list_for_user(Debt, USER))) == 2


class TestSupabaseStorage:
    """Tests for the PostgREST record store."""

    def test_insert(self, client, session):
        row = debt_row()
        session.request.return_value = make_response(201, [row])
        storage = SupabaseRecordStorage(client)

        stored = asyncio.run(storage.insert(make_debt()))

        assert str(stored.id) == row["id"]
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://proj.supabase.co/rest/v1/dividas"
        assert kwargs["headers"]["Prefer"] == "return=representation"
        assert kwargs["headers"]["apikey"] == "anon-key"
        assert kwargs["json"]["valor_original"] == "5000.00"
        assert "id" not in kwargs["json"]

    def test_insert_uses_session_token(self, client, session):
        session.request.return_value = make_response(201, [debt_row()])
        client.set_access_token("user-token")

        asyncio.run(SupabaseRecordStorage(client).insert(make_debt()))

        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer user-token"

    def test_insert_is_not_retried(self, client, session):
        session.request.side_effect = requests.ConnectionError("reset")

        with pytest.raises(ConnectionError):
            asyncio.run(SupabaseRecordStorage(client).insert(make_debt()))
        assert session.request.call_count == 1

    def test_insert_error_message(self, client, session):
        session.request.return_value = make_response(400, {"message": "violates check constraint"})

        with pytest.raises(StorageError, match="violates check constraint"):
            asyncio.run(SupabaseRecordStorage(client).insert(make_debt()))

    def test_permission_denied(self, client, session):
        session.request.return_value = make_response(403, {"message": "permission denied"})

        with pytest.raises(PermissionDeniedError):
            asyncio.run(SupabaseRecordStorage(client).insert(make_debt()))

    def test_update_filters_by_id_and_owner(self, client, session):
        record = make_debt(id=uuid4())
        session.request.return_value = make_response(200, [debt_row(id=str(record.id))])

        asyncio.run(SupabaseRecordStorage(client).update(record))

        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "PATCH"
        assert kwargs["params"] == {"id": f"eq.{record.id}", "user_id": f"eq.{USER}"}
        assert "id" not in kwargs["json"]

    def test_update_no_rows_is_not_found(self, client, session):
        session.request.return_value = make_response(200, [])

        with pytest.raises(NotFoundError):
            asyncio.run(SupabaseRecordStorage(client).update(make_debt(id=uuid4())))

    def test_list_for_user(self, client, session):
        session.request.return_value = make_response(200, [debt_row(), debt_row()])

        records = asyncio.run(SupabaseRecordStorage(client).list_for_user(Debt, USER))

        assert len(records) == 2
        params = session.request.call_args.kwargs["params"]
        assert params["user_id"] == f"eq.{USER}"
        assert params["order"] == "created_at.desc"

    def test_list_skips_malformed_rows(self, client, session):
        session.request.return_value = make_response(200, [debt_row(), {"id": str(uuid4())}])

        records = asyncio.run(SupabaseRecordStorage(client).list_for_user(Debt, USER))

        assert len(records) == 1

    def test_list_beneficiaries_has_no_owner_filter(self, client, session):
        session.request.return_value = make_response(200, [])
        will_id = uuid4()

        asyncio.run(SupabaseRecordStorage(client).list_for_user(
            Beneficiary, USER, filters={"testamento_id": str(will_id)}
        ))

        params = session.request.call_args.kwargs["params"]
        assert "user_id" not in params
        assert params["testamento_id"] == f"eq.{will_id}"

    def test_delete(self, client, session):
        session.request.return_value = make_response(200, [debt_row()])
        assert asyncio.run(SupabaseRecordStorage(client).delete(Will, uuid4(), USER)) is True

        session.request.return_value = make_response(200, [])
        assert asyncio.run(SupabaseRecordStorage(client).delete(Will, uuid4(), USER)) is False

    def test_insert_many_posts_one_array(self, client, session):
        rows = [debt_row(nome="A"), debt_row(nome="B")]
        session.request.return_value = make_response(201, rows)

        stored = asyncio.run(SupabaseRecordStorage(client).insert_many(
            [make_debt(nome="A"), make_debt(nome="B")]
        ))

        assert [d.nome for d in stored] == ["A", "B"]
        assert session.request.call_count == 1
        method, url = session.request.call_args.args
        body = session.request.call_args.kwargs["json"]
        assert (method, url) == ("POST", "https://proj.supabase.co/rest/v1/dividas")
        assert [row["nome"] for row in body] == ["A", "B"]

    def test_insert_many_empty(self, client, session):
        assert asyncio.run(SupabaseRecordStorage(client).insert_many([])) == []
        session.request.assert_not_called()

    def test_insert_many_error(self, client, session):
        session.request.return_value = make_response(400, {"message": "null value in column"})

        with pytest.raises(StorageError, match="null value in column"):
            asyncio.run(SupabaseRecordStorage(client).insert_many([make_debt()]))

    def test_insert_many_short_answer(self, client, session):
        session.request.return_value = make_response(201, [debt_row()])

        with pytest.raises(StorageError, match="1 of 2 rows"):
            asyncio.run(SupabaseRecordStorage(client).insert_many([make_debt(), make_debt()]))


class TestErrorMessages:
    """Tests for error body parsing."""

    def test_message_keys(self):
        assert error_message_from(make_response(400, {"msg": "bad"})) == "bad"
        assert error_message_from(make_response(400, {"error_description": "nope"})) == "nope"
        assert error_message_from(make_response(400, {"error": {"message": "inner"}})) == "inner"

    def test_non_json(self):
        assert error_message_from(make_response(502, text="Bad Gateway")) == "Bad Gateway"

    def test_fallback(self):
        assert error_message_from(make_response(500, {"code": 1})) == "HTTP 500"
