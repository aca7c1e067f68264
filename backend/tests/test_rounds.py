import pytest

from konsept import db
from konsept.errors import PreconditionError, StoreError, ValidationError
from konsept.models import Round
from konsept.services.scoring import rounds
from konsept.services.scoring.aggregator import submit_round_scores


def test_rounds_are_numbered_sequentially(game, add_participants):
    add_participants('Alice')
    for _ in range(4):
        rounds.create_round(game)
    assert [r.round_number for r in rounds.list_rounds(game)] == [1, 2, 3, 4]


def test_create_round_without_participants_is_refused(game):
    with pytest.raises(PreconditionError):
        rounds.create_round(game)
    assert Round.query.filter_by(game_id=game.id).count() == 0


def test_colliding_round_number_rolls_back(game, add_participants):
    add_participants('Alice')
    db.session.add(Round(game_id=game.id, round_number=2))
    db.session.commit()
    # one existing round -> next number is 2, already taken
    with pytest.raises(StoreError):
        rounds.create_round(game)
    assert Round.query.filter_by(game_id=game.id).count() == 1


def test_rename_round_stores_value_as_submitted(game, add_participants):
    add_participants('Alice')
    rnd = rounds.create_round(game)

    renamed = rounds.rename_round(game, rnd.id, '  Finale ')
    assert renamed.round_name == '  Finale '
    assert renamed.display_name == '  Finale '

    renamed = rounds.rename_round(game, rnd.id, '')
    assert renamed.round_name == ''
    assert renamed.display_name == 'Round 1'


def test_rename_round_rejects_non_string(game, add_participants):
    add_participants('Alice')
    rnd = rounds.create_round(game)
    with pytest.raises(ValidationError):
        rounds.rename_round(game, rnd.id, 42)


def test_rename_round_limits_length_without_trimming(game, add_participants):
    add_participants('Alice')
    rnd = rounds.create_round(game)
    with pytest.raises(ValidationError):
        rounds.rename_round(game, rnd.id, 'x' * 129)
    assert db.session.get(Round, rnd.id).round_name is None

    padded = ' ' + 'y' * 126 + ' '
    assert rounds.rename_round(game, rnd.id, padded).round_name == padded


def test_round_snapshot_lists_every_participant(game, add_participants):
    alice, bob = add_participants('Alice', 'Bob')
    rnd = rounds.create_round(game)
    snap = rounds.round_snapshot(game, rnd.id)
    assert snap['round']['display_name'] == 'Round 1'
    assert [s['points'] for s in snap['scores']] == [0, 0]

    submit_round_scores(game, rnd.id, {bob.id: 6})
    snap = rounds.round_snapshot(game, rnd.id)
    assert {s['participant_id']: s['points'] for s in snap['scores']} == {alice.id: 0, bob.id: 6}


def test_round_snapshot_for_unknown_round(game):
    with pytest.raises(ValidationError):
        rounds.round_snapshot(game, 12345)
