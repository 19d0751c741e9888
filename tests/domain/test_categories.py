import pytest

from live_interview.domain.categories import (
    ALL_CATEGORIES,
    DAILY_COMPANION,
    STORY_CATEGORIES,
    InterviewCategory,
    UnknownCategoryError,
    build_system_instruction,
    get_category,
)


class TestCategoryCatalog:
    def test_ids_are_unique(self):
        ids = [c.id for c in ALL_CATEGORIES]
        assert len(ids) == len(set(ids))

    def test_story_categories_are_story_tasks(self):
        assert all(c.task_type == "story" for c in STORY_CATEGORIES)

    def test_daily_companion_is_daily_task(self):
        assert DAILY_COMPANION.task_type == "daily"
        assert DAILY_COMPANION in ALL_CATEGORIES

    def test_every_category_opens_with_question(self):
        assert all(c.opening_question for c in ALL_CATEGORIES)

    def test_get_category(self):
        assert get_category("infancia").name
        assert get_category("diario") is DAILY_COMPANION

    def test_unknown_category(self):
        with pytest.raises(UnknownCategoryError):
            get_category("nope")


class TestSystemInstruction:
    def test_includes_prompt_opening_and_follow_ups(self):
        category = InterviewCategory(
            id="x",
            name="X",
            system_prompt="Eres un biógrafo.",
            opening_question="¿Dónde naciste?",
            follow_ups=("¿Y tus padres?", "¿Y tu casa?"),
        )
        instruction = build_system_instruction(category)
        assert instruction.startswith("Eres un biógrafo.")
        assert "=== PREGUNTA DE APERTURA ===\n¿Dónde naciste?" in instruction
        assert "1. ¿Y tus padres?\n2. ¿Y tu casa?" in instruction
        assert "=== CIERRE ===" in instruction

    def test_omits_empty_sections(self):
        category = InterviewCategory(id="x", name="X", system_prompt="P", opening_question="")
        instruction = build_system_instruction(category)
        assert "PREGUNTA DE APERTURA" not in instruction
        assert "SEGUIMIENTO" not in instruction
