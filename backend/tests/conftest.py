import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from app.domain.blocks import repo as blocks_repo
from app.domain.chat import repo as chat_repo
from app.domain.chat import sockets as chat_sockets
from app.domain.matches import repo as matches_repo
from app.domain.profiles import repo as profiles_repo
from app.domain.profiles.models import Pet, User
from app.infra import postgres
from app.main import app, chat_namespace
from app.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from app.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		await chat_sockets.drain_pending()
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in dev
	mode, and every repository runs against the in-memory backend.
	"""
	original_env = settings.environment
	original_backend = settings.storage_backend
	original_push = settings.realtime_server_push
	settings.environment = "dev"
	settings.storage_backend = "memory"
	settings.realtime_server_push = True
	try:
		yield
	finally:
		settings.environment = original_env
		settings.storage_backend = original_backend
		settings.realtime_server_push = original_push


@pytest_asyncio.fixture(autouse=True)
async def reset_stores():
	yield
	chat_sockets.set_namespace(chat_namespace)
	await profiles_repo.reset_memory_store()
	await matches_repo.reset_memory_store()
	await chat_repo.reset_memory_store()
	await blocks_repo.reset_memory_store()


@pytest_asyncio.fixture
async def world():
	"""Three owners with one pet each: alice/rex, bob/luna, carol/milo."""
	users = {}
	pets = {}
	for user_id, name, pet_id, pet_name in (
		("alice", "Alice", "pet-rex", "Rex"),
		("bob", "Bob", "pet-luna", "Luna"),
		("carol", "Carol", "pet-milo", "Milo"),
	):
		users[user_id] = await profiles_repo.seed_user(User(id=user_id, name=name))
		pets[pet_id] = await profiles_repo.seed_pet(Pet(id=pet_id, owner_id=user_id, name=pet_name, species="dog"))
	return SimpleNamespace(users=users, pets=pets)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
