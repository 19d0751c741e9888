from live_interview.domain.turns import (
    Speaker,
    Turn,
    TurnReconciler,
    format_transcript,
    user_text,
)


class TestPartials:
    def test_cumulative_partial_replaces(self):
        reconciler = TurnReconciler()
        reconciler.on_partial(Speaker.ASSISTANT, "¿Cómo")
        reconciler.on_partial(Speaker.ASSISTANT, "¿Cómo estás?")
        assert reconciler.partial(Speaker.ASSISTANT) == "¿Cómo estás?"

    def test_delta_partial_appends(self):
        reconciler = TurnReconciler(append_partials=True)
        reconciler.on_partial(Speaker.USER, "Cuando era")
        reconciler.on_partial(Speaker.USER, " niño")
        assert reconciler.partial(Speaker.USER) == "Cuando era niño"

    def test_partials_are_per_speaker(self):
        reconciler = TurnReconciler()
        reconciler.on_partial(Speaker.USER, "hola")
        reconciler.on_partial(Speaker.ASSISTANT, "buenas")
        assert reconciler.partial(Speaker.USER) == "hola"
        assert reconciler.partial(Speaker.ASSISTANT) == "buenas"

    def test_partials_do_not_create_turns(self):
        reconciler = TurnReconciler()
        reconciler.on_partial(Speaker.USER, "hola")
        assert reconciler.turns == ()


class TestTurnComplete:
    def test_finalizes_assistant_then_user_turns_in_order(self):
        reconciler = TurnReconciler()
        reconciler.on_turn_complete(assistant_text="¿Cómo estás?")
        reconciler.on_turn_complete(user_text="bien")
        assert reconciler.turns == (
            Turn(Speaker.ASSISTANT, "¿Cómo estás?", 0),
            Turn(Speaker.USER, "bien", 1),
        )

    def test_both_texts_user_first(self):
        reconciler = TurnReconciler()
        finalized = reconciler.on_turn_complete("bien", "Me alegro")
        assert [t.speaker for t in finalized] == [Speaker.USER, Speaker.ASSISTANT]
        assert [t.index for t in finalized] == [0, 1]

    def test_empty_text_never_becomes_turn(self):
        reconciler = TurnReconciler()
        assert reconciler.on_turn_complete("", None) == []
        assert reconciler.on_turn_complete(None, "") == []
        assert reconciler.turns == ()

    def test_clears_partial_of_finalized_speaker_only(self):
        reconciler = TurnReconciler()
        reconciler.on_partial(Speaker.USER, "bie")
        reconciler.on_partial(Speaker.ASSISTANT, "Me")
        reconciler.on_turn_complete(user_text="bien")
        assert reconciler.partial(Speaker.USER) == ""
        assert reconciler.partial(Speaker.ASSISTANT) == "Me"

    def test_turns_are_append_only(self):
        reconciler = TurnReconciler()
        reconciler.on_turn_complete(user_text="uno")
        snapshot = reconciler.turns
        reconciler.on_turn_complete(user_text="dos")
        assert snapshot == (Turn(Speaker.USER, "uno", 0),)
        assert reconciler.turns[:1] == snapshot


class TestFinalizePending:
    def test_promotes_pending_partials(self):
        reconciler = TurnReconciler(append_partials=True)
        reconciler.on_partial(Speaker.ASSISTANT, "¿Cómo")
        reconciler.on_partial(Speaker.ASSISTANT, " estás?")
        finalized = reconciler.finalize_pending()
        assert finalized == [Turn(Speaker.ASSISTANT, "¿Cómo estás?", 0)]
        assert reconciler.partial(Speaker.ASSISTANT) == ""

    def test_nothing_pending_is_noop(self):
        reconciler = TurnReconciler()
        assert reconciler.finalize_pending() == []
        assert reconciler.turns == ()


class TestTranscriptFormatting:
    def test_default_labels(self):
        turns = [
            Turn(Speaker.ASSISTANT, "¿Cómo estás?", 0),
            Turn(Speaker.USER, "bien", 1),
        ]
        assert format_transcript(turns) == "[Entrevistador]: ¿Cómo estás?\n\n[Usuario]: bien"

    def test_custom_labels(self):
        turns = [Turn(Speaker.USER, "hola", 0)]
        labels = {Speaker.USER: "Abuela", Speaker.ASSISTANT: "IA"}
        assert format_transcript(turns, labels) == "[Abuela]: hola"

    def test_empty_transcript(self):
        assert TurnReconciler().transcript() == ""

    def test_user_text_skips_assistant(self):
        turns = [
            Turn(Speaker.ASSISTANT, "¿Dónde creciste?", 0),
            Turn(Speaker.USER, "En Oaxaca", 1),
            Turn(Speaker.USER, "con mis abuelos", 2),
        ]
        assert user_text(turns) == "En Oaxaca\n\ncon mis abuelos"
