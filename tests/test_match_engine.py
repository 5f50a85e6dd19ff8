"""
Tests for the MatchEngine controller
"""
import logging

import pytest

from app.engine.dismissals import DismissalType
from app.engine.match_engine import MatchEngine
from app.engine.rules import EndReason, MatchFormat, MatchRules
from app.engine.state import CreaseRole, Delivery, EventKind, TestMatchConfig
from app.scorecard import build_batting_card, build_bowling_card


class TestUndo:
    def test_undo_is_strict_inverse(self, engine):
        engine.apply_delivery(Delivery(runs=4), now=1000)
        before = engine.state
        engine.record_wicket(DismissalType.CAUGHT, "a1", fielder_id="b4", now=2000)

        assert engine.state.wickets == 1
        assert engine.undo() == before

    def test_undo_marker(self, engine):
        before = engine.state
        engine.assign_bowler("b2")
        assert engine.state.bowler_id == "b2"
        assert engine.undo() == before

    def test_undo_on_empty_stack_is_noop(self, engine):
        state = engine.state
        assert not engine.can_undo
        assert engine.undo() is state

    def test_undo_chain_back_to_start(self, engine):
        start = engine.state
        for runs in (1, 2, 3):
            engine.apply_delivery(Delivery(runs=runs))
        for _ in range(5):
            engine.undo()
        assert engine.state == start
        assert engine.state.score == 0

    def test_undo_edit(self, engine):
        engine.apply_delivery(Delivery(runs=1), now=10)
        engine.apply_delivery(Delivery(runs=1), now=11)
        before = engine.state
        engine.edit_ball(10, {"runs": 6})
        assert engine.state.score == 7
        assert engine.undo() == before


class TestListeners:
    def test_listener_sees_every_snapshot(self, engine):
        seen = []
        engine.add_listener(seen.append)
        engine.apply_delivery(Delivery(runs=2))
        engine.undo()

        assert [s.score for s in seen] == [2, 0]

    def test_failing_listener_does_not_block(self, engine, caplog):
        seen = []

        def broken(state):
            raise RuntimeError("mirror offline")

        engine.add_listener(broken)
        engine.add_listener(seen.append)
        with caplog.at_level(logging.ERROR):
            engine.apply_delivery(Delivery(runs=1))

        assert engine.state.score == 1
        assert len(seen) == 1
        assert "listener failed" in caplog.text

    def test_remove_listener(self, engine):
        seen = []
        engine.add_listener(seen.append)
        engine.remove_listener(seen.append)
        engine.remove_listener(seen.append)
        engine.apply_delivery(Delivery())
        assert seen == []


class TestCommands:
    def test_record_wicket(self, engine):
        engine.record_wicket(DismissalType.RUN_OUT, "a2", fielder_id="b7", runs=1)
        event = engine.state.history[-1]
        assert engine.state.score == 1
        assert event.fielder_id == "b7"
        assert not event.credit_bowler

    def test_assign_batter_roles(self, engine):
        engine.record_wicket(DismissalType.BOWLED, "a1")
        engine.assign_batter("a3")
        assert engine.state.striker_id == "a3"

        engine.record_wicket(DismissalType.RUN_OUT, "a2", fielder_id="b5")
        engine.assign_batter("a4", role=CreaseRole.NON_STRIKER)
        assert engine.state.non_striker_id == "a4"
        assert engine.state.striker_id == "a3"

    def test_assign_bowler_commentary(self, engine):
        engine.assign_bowler("b3")
        assert engine.state.history[-1].commentary == "New bowler"

    def test_retire_hurt_then_return(self, engine):
        engine.retire_batter("a1")
        assert engine.state.wickets == 0
        assert engine.state.striker_id is None

        engine.assign_batter("a1")
        assert engine.state.striker_id == "a1"

    def test_retire_out(self, engine):
        engine.retire_batter("a2", DismissalType.RETIRED_OUT)
        assert engine.state.wickets == 1
        assert engine.state.history[-1].commentary == "Retired Out"

    def test_mid_over_bowler_replacement(self, engine):
        engine.apply_delivery(Delivery())
        engine.replace_bowler_mid_over("b6")
        marker = engine.state.history[-1]

        assert engine.state.bowler_id == "b6"
        assert marker.kind == EventKind.BOWLER_CHANGE
        assert marker.commentary == "Injury Replacement (Bowler)"

        engine.apply_delivery(Delivery(runs=1))
        assert engine.state.history[-1].bowler_id == "b6"

    def test_correct_identity(self, engine):
        engine.apply_delivery(Delivery(runs=4))
        engine.correct_identity("a1", "a9", CreaseRole.STRIKER)
        assert engine.state.history[0].striker_id == "a9"
        assert engine.state.striker_id == "a9"

    def test_update_metadata_merges_adjustments(self, engine):
        engine.update_metadata(umpires=("Dar", "Bowden"), adjustments={"overs_lost": 4})
        engine.update_metadata(adjustments={"session": "Evening"})

        adjustments = engine.state.adjustments
        assert engine.state.umpires == ("Dar", "Bowden")
        assert adjustments.overs_lost == 4
        assert adjustments.session == "Evening"
        assert engine.rules.overs_allowed(engine.state) == 16

    def test_wicket_after_all_out_is_refused(self, opened_state, caplog):
        engine = MatchEngine(opened_state, MatchRules(MatchFormat.T20, squad_size=3))
        engine.record_wicket(DismissalType.BOWLED, "a1")
        engine.assign_batter("a3")
        engine.record_wicket(DismissalType.BOWLED, "a3")
        assert engine.check_end_of_innings() == EndReason.ALL_OUT

        before = engine.state
        with caplog.at_level(logging.WARNING):
            assert engine.record_wicket(DismissalType.CAUGHT, "a2", fielder_id="b2") is before
        assert engine.state.wickets == 2
        assert len(engine.state.history) == len(before.history)
        assert "Wicket refused" in caplog.text

        engine.retire_batter("a2")
        assert engine.state.striker_id is None and engine.state.non_striker_id is None

    def test_timer_pause_resume(self, engine):
        engine.apply_delivery(Delivery(), now=1_000)
        engine.pause_timer(now=5_000)
        assert engine.state.timer.is_paused
        engine.resume_timer(now=65_000)

        timer = engine.state.timer
        assert not timer.is_paused
        assert timer.total_allowances == 60_000


class TestEditKeepsCrease:
    def test_bowler_changed_through_metadata(self, engine, team_b):
        engine.apply_delivery(Delivery(runs=0), now=1000)
        engine.update_metadata(bowler_id="b2")
        engine.apply_delivery(Delivery(runs=1))
        engine.edit_ball(1000, {"runs": 4})

        deliveries = [e for e in engine.state.history if not e.is_marker]
        assert [e.bowler_id for e in deliveries] == ["b1", "b2"]
        assert engine.state.bowler_id == "b2"
        rows = build_bowling_card(list(engine.state.history), team_b.players, 1)
        assert [(r.player_id, r.runs) for r in rows] == [("b1", 4), ("b2", 1)]

    def test_openers_set_through_metadata(self, team_a):
        engine = MatchEngine.new_match("A", "B", rules=MatchRules(MatchFormat.T20))
        engine.update_metadata(striker_id="a1", non_striker_id="a2")
        engine.assign_bowler("b1")
        engine.apply_delivery(Delivery(runs=1))
        engine.apply_delivery(Delivery(runs=0))
        engine.edit_ball(engine.state.history[-2].timestamp, {"runs": 2})

        state = engine.state
        deliveries = [e for e in state.history if not e.is_marker]
        assert [e.striker_id for e in deliveries] == ["a1", "a1"]
        assert (state.striker_id, state.non_striker_id, state.bowler_id) == ("a1", "a2", "b1")
        card = build_batting_card(list(state.history), team_a.players, 1)
        assert {r.player_id: r.runs for r in card.rows} == {"a1": 2, "a2": 0}

    def test_openers_given_to_new_match(self):
        engine = MatchEngine.new_match(
            "A", "B",
            rules=MatchRules(MatchFormat.T20),
            striker_id="a1",
            non_striker_id="a2",
            bowler_id="b1",
        )
        engine.apply_delivery(Delivery(runs=1), now=1000)
        engine.apply_delivery(Delivery(runs=1), now=1001)
        engine.edit_ball(1000, {"runs": 0})

        assert [e.striker_id for e in engine.state.history] == ["a1", "a1"]
        assert [e.bowler_id for e in engine.state.history] == ["b1", "b1"]
        assert engine.state.non_striker_id == "a1"

    def test_metadata_can_clear_a_slot(self, engine):
        engine.update_metadata(non_striker_id=None)
        assert engine.state.non_striker_id is None
        assert engine.state.history == ()


class TestInningsLifecycle:
    def test_end_and_start_innings(self, engine):
        engine.apply_delivery(Delivery(runs=6))
        engine.end_innings()
        engine.start_innings("B", "A", target=7)
        state = engine.state

        assert state.innings == 2
        assert state.innings_scores[0].score == 6
        assert state.innings_scores[0].overs == "0.1"
        assert (state.score, state.wickets, state.total_balls) == (0, 0, 0)
        assert state.striker_id is None
        assert state.target == 7
        assert state.timer.start_time is None
        assert len(state.history) == 1

    def test_declaration_ends_innings(self, engine):
        engine.declare_innings()
        assert engine.check_end_of_innings() == EndReason.DECLARED

        engine.end_innings()
        engine.start_innings("B", "A")
        assert not engine.state.adjustments.declared
        assert engine.check_end_of_innings() is None

    def test_complete_match(self, engine):
        engine.end_innings(complete_match=True)
        assert engine.state.is_completed

    def test_bowler_availability_query(self, engine):
        for _ in range(6):
            engine.apply_delivery(Delivery())
        assert engine.bowler_availability("b1").reason == "Consecutive Over"


class TestMultiDay:
    def test_new_test_match_gets_defaults(self, multi_day_engine):
        state = multi_day_engine.state
        assert multi_day_engine.is_test
        assert state.test_config == TestMatchConfig()
        assert (state.striker_id, state.non_striker_id, state.bowler_id) == ("a1", "a2", "b1")

    def test_limited_overs_match_has_no_test_config(self):
        engine = MatchEngine.new_match("A", "B", rules=MatchRules(MatchFormat.T20))
        assert not engine.is_test
        assert engine.state.test_config is None

    def test_overs_today_and_lead(self, multi_day_engine):
        for runs in (1, 0, 0, 0, 0, 4):
            multi_day_engine.apply_delivery(Delivery(runs=runs))

        state = multi_day_engine.state
        assert state.overs_today == 1
        assert state.lead == 5

    def test_markers_do_not_count_overs(self, multi_day_engine):
        for _ in range(6):
            multi_day_engine.apply_delivery(Delivery())
        multi_day_engine.assign_bowler("b2")
        assert multi_day_engine.state.overs_today == 1

    def test_new_day(self, multi_day_engine):
        for _ in range(6):
            multi_day_engine.apply_delivery(Delivery())
        multi_day_engine.start_new_day()
        state = multi_day_engine.state

        assert state.current_day == 2
        assert state.overs_today == 0
        assert state.adjustments.day_number == 2
        assert state.adjustments.session == "Morning"

    def test_follow_on_flow(self, multi_day_engine):
        engine = multi_day_engine
        engine.apply_delivery(Delivery(runs=6))
        engine.update_metadata(score=400)
        engine.end_innings()
        engine.start_innings("B", "A")
        engine.assign_batter("b1")
        engine.assign_batter("b2", role=CreaseRole.NON_STRIKER)
        engine.assign_bowler("a11")
        engine.apply_delivery(Delivery(runs=2))
        engine.update_metadata(score=150)

        assert engine.state.lead == -250
        assert not engine.can_enforce_follow_on()

        engine.conclude_innings()
        assert engine.can_enforce_follow_on()

        engine.end_innings()
        engine.enforce_follow_on()
        state = engine.state

        assert state.innings == 3
        assert state.batting_team_id == "B"
        assert state.bowling_team_id == "A"
        assert state.is_follow_on_enforced
        assert state.lead == -250
        assert not state.adjustments.concluded

    def test_match_status(self, multi_day_engine):
        assert not multi_day_engine.match_status().is_complete
        for _ in range(5):
            multi_day_engine.start_new_day()
        assert multi_day_engine.match_status().result == "Match Drawn"


@pytest.mark.parametrize("match_format", [MatchFormat.T10, MatchFormat.FIFTY_OVER])
def test_new_match_metadata(match_format):
    engine = MatchEngine.new_match(
        "A", "B",
        rules=MatchRules(match_format),
        toss_winner_id="B",
        toss_decision="bowl",
    )
    assert engine.state.toss_winner_id == "B"
    assert engine.state.toss_decision == "bowl"
    assert engine.rules.match_format == match_format
