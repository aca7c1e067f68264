from konsept import changes
from konsept.changefeed import ChangeEvent, ChangeFeed, publish_change
from konsept.services.games import add_participant, create_game
from konsept.services.scoring import rounds
from konsept.services.scoring.aggregator import submit_round_scores
from konsept.services.scoring.realtime import GameSynchronizer, load_game_rows


def test_feed_filters_by_table_and_game(flask_app):
    feed = ChangeFeed()
    seen = []
    feed.subscribe('rounds', seen.append, game_id=1)
    feed.subscribe('scores', seen.append)

    feed.publish(ChangeEvent('rounds', 2))
    feed.publish(ChangeEvent('rounds', 1, 'insert'))
    feed.publish(ChangeEvent('scores', 7))
    feed.publish(ChangeEvent('participants', 1))

    assert seen == [ChangeEvent('rounds', 1, 'insert'), ChangeEvent('scores', 7)]


def test_closed_subscription_receives_nothing(flask_app):
    feed = ChangeFeed()
    seen = []
    sub = feed.subscribe('scores', seen.append)
    sub.close()
    sub.close()
    assert feed.publish(ChangeEvent('scores', 1)) == 0
    assert seen == []
    assert feed.subscriber_count() == 0


def test_failing_subscriber_does_not_block_others(flask_app):
    feed = ChangeFeed()
    seen = []

    def boom(event):
        raise RuntimeError('listener failed')

    feed.subscribe('scores', boom)
    feed.subscribe('scores', seen.append)
    assert feed.publish(ChangeEvent('scores', 1)) == 1
    assert len(seen) == 1


def test_synchronizer_lifecycle(game):
    states = []
    sync = GameSynchronizer(game.id, states.append)
    initial = sync.open()
    assert initial['participants'] == []
    assert changes.subscriber_count() == 3

    alice = add_participant(game, 'Alice')
    rnd = rounds.create_round(game)
    submit_round_scores(game, rnd.id, {alice.id: 8})

    # participants insert, rounds insert, scores replace
    assert len(states) == 4
    latest = states[-1]
    assert latest['rounds'][0]['display_name'] == 'Round 1'
    row = latest['participants'][0]
    assert row['total_points'] == 8
    assert row['round_scores'] == {rnd.id: 8}
    assert row['rank'] == 1 and row['marker'] == 'trophy'

    sync.close()
    sync.close()
    assert changes.subscriber_count() == 0
    publish_change('scores', game.id)
    assert len(states) == 4
    assert not sync.is_open


def test_synchronizer_ignores_other_games_except_scores(game, owner, concept):
    states = []
    sync = GameSynchronizer(game.id, states.append)
    sync.open()

    other = create_game(owner, concept.id, 'Andre')
    zed = add_participant(other, 'Zed')
    assert len(states) == 1

    rnd = rounds.create_round(other)
    assert len(states) == 1

    submit_round_scores(other, rnd.id, {zed.id: 3})
    assert len(states) == 2
    assert states[-1]['participants'] == []
    sync.close()


def test_overtaken_refresh_is_discarded(game):
    states = []
    calls = []

    def loader(game_id):
        calls.append(game_id)
        if len(calls) == 1:
            sync.refresh()
        return load_game_rows(game_id)

    sync = GameSynchronizer(game.id, states.append, loader=loader)
    assert sync.open() is None
    assert len(calls) == 2
    assert len(states) == 1
    sync.close()


def test_refresh_after_close_is_discarded(game):
    states = []

    def loader(game_id):
        sync.close()
        return load_game_rows(game_id)

    sync = GameSynchronizer(game.id, states.append, loader=loader)
    assert sync.open() is None
    assert states == []


def test_socket_open_game_pushes_state(sio_client, owner_client, game):
    from konsept.socketio_events import open_view_count
    alice = add_participant(game, 'Alice')
    sio_client.get_received('/ws')

    sio_client.emit('open_game', {'game_id': game.id}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert 'opened' in names
    state = next(pkt['args'][0] for pkt in received if pkt['name'] == 'game_state')
    assert state['participants'][0]['name'] == 'Alice'
    assert open_view_count() == 1

    rnd = owner_client.post(f'/api/games/{game.id}/rounds').get_json()
    sio_client.get_received('/ws')
    res = owner_client.put(
        f"/api/games/{game.id}/rounds/{rnd['id']}/scores",
        json={'scores': {str(alice.id): 12}},
    )
    assert res.status_code == 200
    pushed = [pkt['args'][0] for pkt in sio_client.get_received('/ws') if pkt['name'] == 'game_state']
    assert pushed and pushed[-1]['participants'][0]['total_points'] == 12

    sio_client.emit('close_game', namespace='/ws')
    assert any(pkt['name'] == 'closed' for pkt in sio_client.get_received('/ws'))
    assert changes.subscriber_count() == 0
    assert open_view_count() == 0


def test_socket_open_game_requires_access(flask_app, make_user, login, game):
    from konsept import socketio
    make_user('stranger@example.com')
    stranger = login('stranger@example.com')
    sio = socketio.test_client(flask_app, flask_test_client=stranger, namespace='/ws')
    sio.get_received('/ws')
    sio.emit('open_game', {'game_id': game.id}, namespace='/ws')
    received = sio.get_received('/ws')
    assert [pkt['name'] for pkt in received] == ['error']
    assert changes.subscriber_count() == 0
    sio.disconnect(namespace='/ws')


def test_socket_disconnect_tears_down_view(flask_app, owner_client, game):
    from konsept import socketio
    sio = socketio.test_client(flask_app, flask_test_client=owner_client, namespace='/ws')
    sio.emit('open_game', {'game_id': game.id}, namespace='/ws')
    assert changes.subscriber_count() == 3
    sio.disconnect(namespace='/ws')
    assert changes.subscriber_count() == 0
