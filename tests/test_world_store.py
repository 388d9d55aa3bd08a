import asyncio

import pytest

from models import Point, CoinFieldState
from stores import UnknownPlayer, PositionConflict


def test_claim_name_is_first_come(run_with_store):
    async def scenario(store):
        return [await store.claim_name("alice"), await store.claim_name("alice")]

    assert run_with_store(scenario) == [True, False]


def test_admit_player_creates_position_and_zero_score(run_with_store):
    async def scenario(store):
        admitted = await store.admit_player("alice", Point(3, 4))
        return admitted, await store.get_position("alice"), await store.ranked_scores()

    admitted, position, scores = run_with_store(scenario)
    assert admitted is True
    assert position == Point(3, 4)
    assert scores == [("alice", 0)]


def test_admit_player_twice_writes_nothing(run_with_store):
    async def scenario(store):
        await store.admit_player("alice", Point(3, 4))
        await store.increment_score("alice", 5)
        again = await store.admit_player("alice", Point(9, 9))
        return again, await store.get_position("alice"), await store.ranked_scores()

    again, position, scores = run_with_store(scenario)
    assert again is False
    assert position == Point(3, 4)
    assert scores == [("alice", 5)]


def test_admit_player_rejects_previously_claimed_name(run_with_store):
    async def scenario(store):
        await store.claim_name("bob")
        admitted = await store.admit_player("bob", Point(1, 1))
        return admitted, await store.all_player_positions()

    admitted, positions = run_with_store(scenario)
    assert admitted is False
    assert positions == {}


def test_concurrent_admission_of_one_name_has_one_winner(run_with_store):
    async def scenario(store):
        return await asyncio.gather(*(store.admit_player("carol", Point(i, 0)) for i in range(20)))

    results = run_with_store(scenario)
    assert results.count(True) == 1


def test_get_position_of_unknown_player_raises(run_with_store):
    async def scenario(store):
        await store.get_position("nobody")

    with pytest.raises(UnknownPlayer):
        run_with_store(scenario)


def test_all_player_positions(run_with_store):
    async def scenario(store):
        await store.admit_player("a", Point(0, 0))
        await store.admit_player("b", Point(1, 2))
        await store.set_position("a", Point(5, 5))
        return await store.all_player_positions()

    assert run_with_store(scenario) == {"a": Point(5, 5), "b": Point(1, 2)}


def test_ranked_scores_descending_with_ties_in_arrival_order(run_with_store):
    async def scenario(store):
        for name in ("zed", "amy", "kim", "bo"):
            await store.admit_player(name, Point(0, 0))
        await store.increment_score("amy", 5)
        await store.increment_score("bo", 5)
        await store.increment_score("kim", 2)
        return await store.ranked_scores()

    assert run_with_store(scenario) == [("amy", 5), ("bo", 5), ("kim", 2), ("zed", 0)]


def test_init_score_keeps_arrival_order(run_with_store):
    async def scenario(store):
        await store.init_score("first", 0)
        await store.init_score("second", 0)
        await store.init_score("first", 0)
        return await store.ranked_scores()

    assert run_with_store(scenario) == [("first", 0), ("second", 0)]


def test_increment_score_returns_new_total(run_with_store):
    async def scenario(store):
        await store.init_score("amy", 0)
        await store.increment_score("amy", 2)
        return await store.increment_score("amy", 10)

    assert run_with_store(scenario) == 12


def test_increment_score_of_unknown_player_raises(run_with_store):
    async def scenario(store):
        await store.increment_score("ghost", 1)

    with pytest.raises(UnknownPlayer):
        run_with_store(scenario)


def test_coin_primitives(run_with_store):
    async def scenario(store):
        seen = {}
        seen["placed"] = await store.set_coin(Point(1, 1), 5)
        seen["placed_again"] = await store.set_coin(Point(1, 1), 10)
        seen["value"] = await store.coin_at(Point(1, 1))
        seen["empty"] = await store.coin_at(Point(2, 2))
        await store.set_coin(Point(2, 2), 1)
        seen["count"] = await store.coin_count()
        seen["all"] = await store.all_coins()
        seen["removed"] = await store.remove_coin(Point(2, 2))
        seen["removed_again"] = await store.remove_coin(Point(2, 2))
        await store.clear_all_coins()
        seen["count_after_clear"] = await store.coin_count()
        return seen

    seen = run_with_store(scenario)
    assert seen["placed"] is True
    assert seen["placed_again"] is False
    assert seen["value"] == 5
    assert seen["empty"] is None
    assert seen["count"] == 2
    assert seen["all"] == {Point(1, 1): 5, Point(2, 2): 1}
    assert seen["removed"] is True
    assert seen["removed_again"] is False
    assert seen["count_after_clear"] == 0


def test_commit_move_collects_coin(run_with_store):
    async def scenario(store):
        await store.reset_coins({Point(1, 0): 5, Point(7, 7): 1})
        await store.admit_player("amy", Point(0, 0))
        commit = await store.commit_move("amy", Point(0, 0), Point(1, 0))
        return (
            commit,
            await store.get_position("amy"),
            await store.ranked_scores(),
            await store.all_coins(),
        )

    commit, position, scores, coins = run_with_store(scenario)
    assert commit.collected == 5
    assert commit.coins_left == 1
    assert commit.generation == 1
    assert position == Point(1, 0)
    assert scores == [("amy", 5)]
    assert coins == {Point(7, 7): 1}


def test_commit_move_onto_empty_cell(run_with_store):
    async def scenario(store):
        await store.reset_coins({Point(7, 7): 1})
        await store.admit_player("amy", Point(0, 0))
        commit = await store.commit_move("amy", Point(0, 0), Point(0, 1))
        return commit, await store.ranked_scores(), await store.coin_count()

    commit, scores, count = run_with_store(scenario)
    assert commit.collected == 0
    assert scores == [("amy", 0)]
    assert count == 1


def test_commit_move_with_stale_origin_changes_nothing(run_with_store):
    async def scenario(store):
        await store.reset_coins({Point(3, 3): 10})
        await store.admit_player("amy", Point(2, 3))
        try:
            await store.commit_move("amy", Point(9, 9), Point(3, 3))
        except PositionConflict:
            pass
        else:
            raise AssertionError("expected PositionConflict")
        return await store.get_position("amy"), await store.ranked_scores(), await store.all_coins()

    position, scores, coins = run_with_store(scenario)
    assert position == Point(2, 3)
    assert scores == [("amy", 0)]
    assert coins == {Point(3, 3): 10}


def test_commit_move_of_unknown_player_raises(run_with_store):
    async def scenario(store):
        await store.commit_move("ghost", Point(0, 0), Point(0, 1))

    with pytest.raises(UnknownPlayer):
        run_with_store(scenario)


def test_reset_coins_replaces_field_and_bumps_generation(run_with_store):
    async def scenario(store):
        before = await store.coin_field_state()
        await store.set_coin(Point(0, 0), 1)
        await store.reset_coins({Point(1, 1): 2, Point(2, 2): 5})
        return before, await store.coin_field_state(), await store.all_coins()

    before, after, coins = run_with_store(scenario)
    assert before == CoinFieldState(0, 0)
    assert after == CoinFieldState(2, 1)
    assert coins == {Point(1, 1): 2, Point(2, 2): 5}


def test_guarded_reset_requires_empty_field_at_expected_generation(run_with_store):
    async def scenario(store):
        await store.reset_coins({Point(1, 1): 2})
        not_empty = await store.reset_coins({Point(2, 2): 1}, expected_generation=1)
        await store.clear_all_coins()
        stale = await store.reset_coins({Point(2, 2): 1}, expected_generation=0)
        applied = await store.reset_coins({Point(2, 2): 1}, expected_generation=1)
        return not_empty, stale, applied, await store.coin_field_state()

    not_empty, stale, applied, state = run_with_store(scenario)
    assert not_empty is False
    assert stale is False
    assert applied is True
    assert state == CoinFieldState(1, 2)


def test_concurrent_guarded_resets_apply_once(run_with_store):
    async def scenario(store):
        results = await asyncio.gather(
            *(store.reset_coins({Point(i, 0): 1}, expected_generation=0) for i in range(10))
        )
        return results, await store.coin_field_state()

    results, state = run_with_store(scenario)
    assert results.count(True) == 1
    assert state == CoinFieldState(1, 1)


def test_memory_commit_move_without_score_entry_changes_nothing(run_with_memory_store):
    async def scenario(store):
        await store.reset_coins({Point(1, 0): 5})
        await store.set_position("amy", Point(0, 0))
        with pytest.raises(UnknownPlayer):
            await store.commit_move("amy", Point(0, 0), Point(1, 0))
        return await store.all_coins(), await store.get_position("amy"), await store.ranked_scores()

    coins, position, scores = run_with_memory_store(scenario)
    assert coins == {Point(1, 0): 5}
    assert position == Point(0, 0)
    assert scores == []
