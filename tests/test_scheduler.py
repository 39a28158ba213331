from srs_engine.scheduler import Scheduler
from srs_engine.intervals import IntervalModel
from srs_engine.card import Card
from srs_engine.item import ItemFamily, ReviewableItem
from srs_engine.rating import Rating
from srs_engine.review_log import ReviewLog
from srs_engine.state import State
from srs_engine.learning import in_learning_phase
from srs_engine.mastery import MasteryLevel, mastery_level
from srs_engine.errors import InvalidState, UnknownRating

from datetime import datetime, timedelta, timezone
import json
import pytest
import random
import sys

REVIEW_DATETIME = datetime(2022, 11, 29, 12, 30, 0, 0, timezone.utc)
WORD = ReviewableItem(item_id="casa", family=ItemFamily.Vocabulary)


def review_card(**kwargs) -> Card:
    """
    A card that has graduated into the Review state.
    """

    settings = dict(
        item_id="casa",
        state=State.Review,
        ease_factor=2.5,
        interval_days=6.0,
        repetitions=2,
        due=REVIEW_DATETIME,
        last_review=REVIEW_DATETIME - timedelta(days=6),
    )
    settings.update(kwargs)
    return Card(**settings)


class TestLearningSteps:
    def test_good_twice_graduates(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        result = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME)

        assert result.card.state == State.Learning
        assert result.card.step == 1
        assert result.requeue is True
        assert result.card.due == REVIEW_DATETIME + timedelta(days=3)

        result = scheduler.grade(
            result.card, Rating.Good, review_datetime=REVIEW_DATETIME
        )

        assert result.card.state == State.Review
        assert result.card.step == -1
        assert result.card.interval_days == 1
        assert result.card.repetitions == 1
        assert result.card.ease_factor == 2.5
        assert result.requeue is False
        assert result.card.due == REVIEW_DATETIME + timedelta(days=1)

    def test_again_resets_step(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)
        assert result.card.state == State.Learning
        assert result.card.step == 0
        assert result.requeue is True
        assert result.card.due == REVIEW_DATETIME + timedelta(hours=12)

        card = scheduler.grade(
            result.card, Rating.Good, review_datetime=REVIEW_DATETIME
        ).card
        assert card.step == 1

        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)
        assert result.card.state == State.Learning
        assert result.card.step == 0
        assert result.card.lapses == 0
        assert result.requeue is True

    @pytest.mark.parametrize(
        "learning_steps",
        [
            (timedelta(minutes=10),),
            (timedelta(hours=12), timedelta(days=3)),
            (timedelta(minutes=1), timedelta(minutes=10), timedelta(hours=1)),
        ],
    )
    def test_easy_graduates_new_card_immediately(self, learning_steps):
        scheduler = Scheduler(learning_steps=learning_steps)
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        result = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME)

        assert result.card.state == State.Review
        assert result.card.step == -1
        assert result.card.interval_days == 4
        assert result.card.repetitions == 1
        assert result.card.ease_factor == pytest.approx(2.65)
        assert result.requeue is False
        assert result.card.due == REVIEW_DATETIME + timedelta(days=4)

    def test_step_beyond_learning_steps(self):
        # the card was stepped by a scheduler with more learning steps
        scheduler = Scheduler()
        card = Card(item_id="casa", state=State.Learning, step=3)

        result = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME)
        assert result.card.state == State.Review
        assert result.card.interval_days == 1

        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)
        assert result.card.state == State.Learning
        assert result.card.step == 0


class TestIntervals:
    def test_good_review(self):
        scheduler = Scheduler()
        card = review_card(interval_days=6.0, ease_factor=2.5, repetitions=2)

        result = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME)

        assert result.card.state == State.Review
        assert result.card.interval_days == 15
        assert result.card.ease_factor == 2.5
        assert result.card.repetitions == 3
        assert result.requeue is False
        assert result.card.due == REVIEW_DATETIME + timedelta(days=15)
        assert result.card.last_review == REVIEW_DATETIME

    def test_easy_review(self):
        scheduler = Scheduler()
        card = review_card(interval_days=6.0, ease_factor=2.5)

        result = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME)

        assert result.card.interval_days == pytest.approx(19.5)
        assert result.card.ease_factor == pytest.approx(2.65)
        assert result.card.repetitions == 3

    def test_good_review_without_repetitions(self):
        # an imported card can reach Review without any recorded repetitions
        scheduler = Scheduler()
        card = review_card(interval_days=6.0, repetitions=0)

        result = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME)

        assert result.card.interval_days == 15
        assert result.card.repetitions == 1

    def test_lapse(self):
        scheduler = Scheduler()
        card = review_card(ease_factor=2.5, lapses=1, repetitions=4)

        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)

        assert result.card.state == State.Relearning
        assert result.card.step == 0
        assert result.card.lapses == 2
        assert result.card.repetitions == 0
        assert result.card.ease_factor == pytest.approx(2.3)
        assert result.card.interval_days == 1
        assert result.requeue is True
        assert result.card.due == REVIEW_DATETIME + timedelta(days=1)

    def test_lapse_ease_factor_floor(self):
        scheduler = Scheduler()
        card = review_card(ease_factor=1.4)

        card = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME).card
        assert card.ease_factor == 1.3

        card = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME).card
        card = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME).card
        assert card.ease_factor == 1.3

    def test_relearning(self):
        scheduler = Scheduler()
        card = review_card(interval_days=40.0, repetitions=5)

        card = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME).card
        assert card.state == State.Relearning

        # failing again while relearning is not another lapse
        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)
        assert result.card.state == State.Relearning
        assert result.card.step == 0
        assert result.card.lapses == 1
        assert result.requeue is True

        result = scheduler.grade(
            result.card, Rating.Good, review_datetime=REVIEW_DATETIME
        )
        assert result.card.state == State.Relearning
        assert result.card.step == 1
        assert result.requeue is True

        result = scheduler.grade(
            result.card, Rating.Good, review_datetime=REVIEW_DATETIME
        )
        assert result.card.state == State.Review
        assert result.card.step == -1
        assert result.card.interval_days == 1
        assert result.card.repetitions == 1
        assert result.card.lapses == 1
        assert result.requeue is False

    def test_relearning_easy(self):
        scheduler = Scheduler()
        card = review_card()

        card = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME).card
        card = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME).card

        assert card.state == State.Review
        assert card.interval_days == 4
        assert card.repetitions == 1

    def test_intervals_never_shrink(self):
        scheduler = Scheduler()
        rng = random.Random(42)

        for _ in range(50):
            card = review_card(
                interval_days=rng.uniform(1, 60), ease_factor=rng.uniform(1.3, 3.0)
            )
            review_datetime = REVIEW_DATETIME

            for _ in range(8):
                rating = rng.choice([Rating.Good, Rating.Easy])
                previous_interval = card.interval_days

                card = scheduler.grade(
                    card, rating, review_datetime=review_datetime
                ).card

                assert card.state == State.Review
                assert card.interval_days >= previous_interval
                review_datetime = card.due

    def test_maximum_interval(self):
        scheduler = Scheduler(maximum_interval=10)
        card = review_card(interval_days=6.0)

        card = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME).card
        assert card.interval_days == 10
        assert card.due == REVIEW_DATETIME + timedelta(days=10)

        card = scheduler.grade(card, Rating.Easy, review_datetime=card.due).card
        assert card.interval_days == 10

    def test_maximum_ease_factor(self):
        scheduler = Scheduler(maximum_ease_factor=2.6)
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        card = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME).card
        assert card.ease_factor == 2.6

        card = scheduler.grade(card, Rating.Easy, review_datetime=card.due).card
        assert card.ease_factor == 2.6

    def test_due_in_days(self):
        interval_model = IntervalModel()

        assert interval_model.due_in_days(0.4) == 1
        assert interval_model.due_in_days(1.0) == 1
        assert interval_model.due_in_days(2.6) == 3
        assert interval_model.due_in_days(2.5) == 3
        assert interval_model.due_in_days(37.5) == 38
        assert interval_model.due_in_days(40000.0) == 36500

    def test_half_day_intervals_round_up(self):
        scheduler = Scheduler()
        card = review_card(interval_days=1.0, ease_factor=2.5, repetitions=1)

        card = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME).card

        assert card.interval_days == 2.5
        assert card.due == REVIEW_DATETIME + timedelta(days=3)


class TestGrade:
    def test_invariants_hold_for_any_sequence(self):
        scheduler = Scheduler()
        rng = random.Random(7)

        for index in range(100):
            card = scheduler.new_card(
                ReviewableItem(item_id=str(index), family=ItemFamily.GrammarConcept),
                created=REVIEW_DATETIME,
            )
            review_datetime = REVIEW_DATETIME

            for _ in range(30):
                rating = rng.choice(list(Rating))
                card = scheduler.grade(
                    card, rating, review_datetime=review_datetime
                ).card

                assert (card.state == State.Review) == (card.step == -1)
                assert card.ease_factor >= 1.3
                assert card.is_valid()
                review_datetime = card.due

    @pytest.mark.parametrize("rating", [0, 2, 3, 6, -1, "4", 4.0, True, None])
    def test_unknown_rating(self, rating):
        scheduler = Scheduler()
        card = review_card()
        card_dict = card.to_dict()

        with pytest.raises(UnknownRating):
            scheduler.grade(card, rating, review_datetime=REVIEW_DATETIME)

        assert card.to_dict() == card_dict

    def test_raw_ratings(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        assert scheduler.grade(card, 1, REVIEW_DATETIME).review_log.rating == Rating.Again
        assert scheduler.grade(card, 4, REVIEW_DATETIME).review_log.rating == Rating.Good
        assert scheduler.grade(card, 5, REVIEW_DATETIME).review_log.rating == Rating.Easy

    @pytest.mark.parametrize(
        "card",
        [
            Card(item_id="casa", state=State.Review, step=0),
            Card(item_id="casa", state=State.Learning, step=-1),
            Card(item_id="casa", state=State.Relearning, step=-2),
            Card(item_id="casa", state=State.New, step=1),
            Card(item_id="casa", state=State.Learning, step=0, ease_factor=1.2),
        ],
    )
    def test_invalid_state(self, card):
        scheduler = Scheduler()

        assert not card.is_valid()

        with pytest.raises(InvalidState):
            scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME)

    def test_card_is_not_mutated(self):
        scheduler = Scheduler()
        card = review_card()
        card_dict = card.to_dict()

        result = scheduler.grade(card, Rating.Again, review_datetime=REVIEW_DATETIME)

        assert card.to_dict() == card_dict
        assert result.card is not card

    def test_datetime(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD)

        # new cards should be due immediately after creation
        assert datetime.now(timezone.utc) >= card.due

        # grading a card with a non-utc, non-timezone-aware datetime object should raise a ValueError
        with pytest.raises(ValueError):
            scheduler.grade(card, Rating.Good, review_datetime=datetime(2022, 11, 29))

        result = scheduler.grade(card, Rating.Good)

        assert result.card.due.tzinfo == timezone.utc
        assert result.card.last_review.tzinfo == timezone.utc
        assert result.card.due >= result.card.last_review

    def test_review_log(self):
        scheduler = Scheduler()
        card = review_card()

        review_log = scheduler.grade(
            card, Rating.Again, review_datetime=REVIEW_DATETIME, review_duration=3200
        ).review_log

        assert review_log == ReviewLog(
            item_id="casa",
            rating=Rating.Again,
            review_datetime=REVIEW_DATETIME,
            review_duration=3200,
            state=State.Review,
            requeue=True,
        )

    def test_rating_options(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        assert scheduler.is_learning(card)
        assert scheduler.rating_options(card) == (Rating.Again, Rating.Good, Rating.Easy)

        card = scheduler.grade(card, Rating.Easy, review_datetime=REVIEW_DATETIME).card

        assert not scheduler.is_learning(card)
        assert scheduler.rating_options(card) == (Rating.Again, Rating.Easy)

        card = scheduler.grade(card, Rating.Again, review_datetime=card.due).card

        assert card.state == State.Relearning
        assert scheduler.rating_options(card) == (Rating.Again, Rating.Good, Rating.Easy)

    def test_rating_options_past_the_last_step(self):
        scheduler = Scheduler()
        card = Card(item_id="casa", state=State.Learning, step=3)

        assert not scheduler.is_learning(card)
        assert scheduler.rating_options(card) == (Rating.Again, Rating.Good, Rating.Easy)

    def test_in_learning_phase(self):
        assert in_learning_phase(0)
        assert in_learning_phase(1)
        assert not in_learning_phase(2)
        assert not in_learning_phase(-1)
        assert in_learning_phase(2, step_count=3)

    def test_reschedule_card(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)
        review_datetime = REVIEW_DATETIME

        review_logs = []
        ratings = (
            Rating.Good,
            Rating.Good,
            Rating.Easy,
            Rating.Again,
            Rating.Good,
            Rating.Good,
        )
        for rating in ratings:
            result = scheduler.grade(card, rating, review_datetime=review_datetime)
            card = result.card
            review_logs.append(result.review_log)
            review_datetime = card.due

        rescheduled_card = scheduler.reschedule_card(card, list(reversed(review_logs)))
        assert rescheduled_card == card

        # a longer graduating interval carries over to the rescheduled card
        other_scheduler = Scheduler(graduating_interval=2.0)
        rescheduled_card = other_scheduler.reschedule_card(card, review_logs)
        assert rescheduled_card.interval_days > card.interval_days

    def test_reschedule_card_wrong_review_logs(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)
        other_card = Card(item_id="gatto")

        review_log = scheduler.grade(
            other_card, Rating.Good, review_datetime=REVIEW_DATETIME
        ).review_log

        with pytest.raises(ValueError):
            scheduler.reschedule_card(card, [review_log])


class TestSerialization:
    def test_Card_serialize(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        # card object is not naturally JSON serializable
        with pytest.raises(TypeError):
            json.dumps(card.__dict__)

        assert Card.from_dict(card.to_dict()) == card
        assert Card.from_json(card.to_json()) == card

        reviewed_card = scheduler.grade(
            card, Rating.Good, review_datetime=REVIEW_DATETIME
        ).card

        assert Card.from_json(reviewed_card.to_json()) == reviewed_card
        assert card.to_dict() != reviewed_card.to_dict()

    def test_ReviewLog_serialize(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)

        review_log = scheduler.grade(
            card, Rating.Again, review_datetime=REVIEW_DATETIME
        ).review_log

        with pytest.raises(TypeError):
            json.dumps(review_log.__dict__)

        assert ReviewLog.from_dict(review_log.to_dict()) == review_log
        assert ReviewLog.from_json(review_log.to_json()) == review_log

    def test_Scheduler_serialize(self):
        scheduler = Scheduler(
            learning_steps=(timedelta(minutes=1), timedelta(minutes=10)),
            maximum_ease_factor=3.0,
            requeue_offset=5,
        )

        assert type(json.dumps(scheduler.to_dict())) is str

        copied_scheduler = Scheduler.from_json(scheduler.to_json())
        assert copied_scheduler == scheduler
        assert copied_scheduler.to_dict() == scheduler.to_dict()

        # missing settings fall back to their defaults
        assert Scheduler.from_dict({"requeue_offset": 2}).learning_steps == (
            timedelta(hours=12),
            timedelta(days=3),
        )

    def test_ReviewableItem_serialize(self):
        item = ReviewableItem(item_id="deck-1:42", family=ItemFamily.ImportedCard)

        assert item.to_dict() == {"item_id": "deck-1:42", "family": "imported_card"}
        assert ReviewableItem.from_dict(item.to_dict()) == item

    def test_scheduler_settings_validation(self):
        with pytest.raises(ValueError, match="learning_steps"):
            Scheduler(learning_steps=[])

        with pytest.raises(ValueError, match="minimum_ease_factor"):
            Scheduler(minimum_ease_factor=1.0)

        with pytest.raises(ValueError) as excinfo:
            Scheduler(requeue_offset=0, easy_interval=0.5)

        assert "requeue_offset" in str(excinfo.value)
        assert "easy_interval" in str(excinfo.value)

    def test_class_repr(self):
        card = Card(item_id="casa")

        assert str(card) == repr(card)

        scheduler = Scheduler()

        assert str(scheduler) == repr(scheduler)

        review_log = scheduler.grade(card, Rating.Good).review_log

        assert str(review_log) == repr(review_log)


class TestMastery:
    def test_mastery_level(self):
        scheduler = Scheduler()
        card = scheduler.new_card(WORD, created=REVIEW_DATETIME)
        assert mastery_level(card) == MasteryLevel.New

        card = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME).card
        assert mastery_level(card) == MasteryLevel.Learning

        card = scheduler.grade(card, Rating.Good, review_datetime=REVIEW_DATETIME).card
        assert mastery_level(card) == MasteryLevel.Practicing

        for _ in range(4):
            card = scheduler.grade(card, Rating.Easy, review_datetime=card.due).card

        assert card.repetitions == 5
        assert mastery_level(card) == MasteryLevel.Mastered


class TestImports:
    def test_CollectionStats_lazy_loading(self):
        assert "srs_engine.scheduler" in sys.modules
        assert "srs_engine.card" in sys.modules

        assert "srs_engine.stats" not in sys.modules

        pytest.importorskip("pandas")
        from srs_engine import CollectionStats  # noqa: F401 (linter: unused import)

        assert "srs_engine.stats" in sys.modules

    def test_import_non_existent_module(self):
        with pytest.raises(ImportError):
            from srs_engine import NotAModule  # noqa: F401 (linter: unused import)
