"""PeerRegistry unit tests."""
from __future__ import annotations

import re

from signaling.models import PeerStatus
from signaling.registry import format_id
from signaling.registry import generate_connection_id
from signaling.registry import is_well_formed
from signaling.registry import normalize_id

ID_PATTERN = re.compile(r'^\d{3}-\d{3}-\d{3}$')


def test_generated_ids_are_well_formed() -> None:
    for _ in range(200):
        connection_id = generate_connection_id()
        assert ID_PATTERN.match(connection_id)
        assert connection_id[0] != '0'


def test_id_helpers() -> None:
    assert normalize_id('123-456-789') == '123456789'
    assert normalize_id('123 456 789') == '123456789'
    assert format_id('123456789') == '123-456-789'
    assert is_well_formed('123456789')
    assert is_well_formed('12-3456-789')
    assert not is_well_formed('12345678')
    assert not is_well_formed('1234567890')
    assert not is_well_formed('abc-def-ghi')


def test_registered_ids_are_unique(registry, make_transport) -> None:
    ids = {registry.register(make_transport()) for _ in range(300)}
    assert len(ids) == 300
    assert len(registry) == 300
    assert all(ID_PATTERN.match(i) for i in ids)
    assert len({normalize_id(i) for i in ids}) == 300


def test_generation_retries_on_collision(
    registry,
    make_transport,
    monkeypatch,
) -> None:
    draws = iter([111111111, 111111111, 111111111, 222222222])
    monkeypatch.setattr(
        'signaling.registry.random.randint',
        lambda a, b: next(draws),
    )
    assert registry.register(make_transport()) == '111-111-111'
    assert registry.register(make_transport()) == '222-222-222'


def test_lookup_ignores_hyphens(registry, make_transport) -> None:
    transport = make_transport()
    connection_id = registry.register(transport)
    digits = normalize_id(connection_id)

    by_formatted = registry.lookup(connection_id)
    by_digits = registry.lookup(digits)
    by_odd_dashes = registry.lookup(f'{digits[:2]}-{digits[2:]}')
    assert by_formatted is not None
    assert by_formatted is by_digits is by_odd_dashes
    assert by_formatted.transport is transport
    assert connection_id in registry
    assert registry.lookup('000-000-000') is None


def test_register_is_idempotent(registry, make_transport) -> None:
    transport = make_transport()
    first = registry.register(transport)
    second = registry.register(transport, preferred_id='999-999-999')
    assert first == second
    assert len(registry) == 1


def test_preferred_id_adopted(registry, make_transport) -> None:
    assert registry.register(make_transport(), '987654321') == '987-654-321'
    assert registry.register(make_transport(), '123 456 789') == '123-456-789'


def test_malformed_preferred_id_ignored(registry, make_transport) -> None:
    connection_id = registry.register(make_transport(), '12-34')
    assert ID_PATTERN.match(connection_id)
    assert connection_id != '12-34'


def test_preferred_id_held_by_live_peer(registry, make_transport) -> None:
    owner = make_transport()
    registry.register(owner, '555-555-555')
    other = registry.register(make_transport(), '555-555-555')
    assert other != '555-555-555'
    assert registry.lookup('555-555-555').transport is owner


def test_preferred_id_reactivates_lost_peer(registry, make_transport) -> None:
    old = make_transport()
    host_id = registry.register(old, '555-555-555')
    viewer_id = registry.register(make_transport())
    registry.lookup(host_id).pair_with(viewer_id)

    assert registry.mark_lost(old) is not None
    new = make_transport()
    assert registry.register(new, '555555555') == host_id

    peer = registry.lookup(host_id)
    assert peer.transport is new
    assert not peer.transport_lost
    assert peer.status == PeerStatus.BUSY
    assert peer.connected_to == viewer_id
    assert registry.peer_for(new) is peer
    assert registry.peer_for(old) is None
    assert len(registry) == 2


def test_remove(registry, make_transport) -> None:
    transport = make_transport()
    connection_id = registry.register(transport)
    removed = registry.remove(normalize_id(connection_id))
    assert removed is not None
    assert removed.connection_id == connection_id
    assert registry.lookup(connection_id) is None
    assert registry.peer_for(transport) is None
    assert registry.remove(connection_id) is None
    # The transport may register again with a new entry
    assert registry.register(transport)
    assert len(registry) == 1
