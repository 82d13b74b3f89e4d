"""
auth/clients.py -- Client applications and id-or-name resolution.

Callers identify a client either by its numeric id or by its name, and
find_client() accepts both. The id is tried first, then the name; the first
hit wins. That only stays unambiguous while no client is named like another
client's id -- the api_clients UNIQUE(name) constraint covers name clashes,
numeric names are the caller's responsibility.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import PersistenceError
from auth.models import Client
from auth.store import clients_table, now_iso, parse_row_id


class ClientStore:
    """Repository for Client records."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_client(self, name: str) -> Client:
        """Insert a client and return it. Raises PersistenceError on a duplicate name."""
        created_at = now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(clients_table.insert().values(name=name, created_at=created_at))
                conn.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not create client {name!r}") from exc
        return Client(name=name, id=result.inserted_primary_key[0], created_at=created_at)

    def get_by_id(self, client_id: int) -> Client | None:
        row_id = parse_row_id(client_id)
        if row_id is None:
            return None
        return self._fetch_one(clients_table.c.id == row_id)

    def get_by_name(self, name: str) -> Client | None:
        return self._fetch_one(clients_table.c.name == name)

    def _fetch_one(self, condition) -> Client | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(clients_table.select().where(condition)).fetchone()
        except SQLAlchemyError as exc:
            raise PersistenceError("Client lookup failed") from exc
        return _row_to_client(row) if row is not None else None


class ClientResolver:
    """Resolve a client reference given as an id or a name."""

    def __init__(self, clients: ClientStore) -> None:
        self.clients = clients

    def find_client(self, id_or_name: int | str | None) -> Client | None:
        """Return the client whose id or name equals id_or_name, or None.

        Empty references (None, "", 0) resolve to None without a query. A
        numeric reference that cannot be a row id (e.g. beyond 64 bits) is
        only tried as a name.
        """
        if not id_or_name or isinstance(id_or_name, bool):
            return None

        client_id = parse_row_id(id_or_name)
        if client_id is not None:
            client = self.clients.get_by_id(client_id)
            if client is not None:
                return client

        return self.clients.get_by_name(str(id_or_name))

    def validate_client(self, id_or_name: int | str | None) -> bool:
        return self.find_client(id_or_name) is not None


def _row_to_client(row) -> Client:
    return Client(id=row.id, name=row.name, created_at=row.created_at)
