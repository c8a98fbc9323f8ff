from heritage_whisper.prompts.catalog import CatalogGates, build_catalog, find_catalog_item
from heritage_whisper.prompts.fallback import decade_fallback
from heritage_whisper.prompts.keywords import FALLBACK_FOLLOW_UPS, fallback_follow_up, follow_up_question


class TestFollowUpQuestion:
    def test_keyword_match(self):
        question, category = follow_up_question("I was so scared that night")
        assert question == "How did you find the courage to face that fear?"
        assert category == "emotion"

    def test_used_questions_are_skipped(self):
        question, category = follow_up_question(
            "I was so scared that night", used=["How did you find the courage to face that fear?"]
        )
        assert question == FALLBACK_FOLLOW_UPS[0]
        assert category is None

    def test_only_recent_words_count(self):
        question, category = follow_up_question("scared " + "word " * 60)
        assert category is None

    def test_fallback_cycles_then_repeats(self):
        assert fallback_follow_up(FALLBACK_FOLLOW_UPS[:2]) == FALLBACK_FOLLOW_UPS[2]
        assert fallback_follow_up(FALLBACK_FOLLOW_UPS) == FALLBACK_FOLLOW_UPS[0]


class TestCatalog:
    def test_gated_categories_hidden_by_default(self):
        names = [category.name for category in build_catalog()]
        assert "Advice" in names
        for gated in ("Children", "College", "Siblings", "Spouse or Partner", "Pets"):
            assert gated not in names

    def test_gates_unlock_categories_and_items(self):
        catalog = {category.name: category for category in build_catalog(CatalogGates(requires_college=True))}
        assert "College" in catalog
        assert "A great friend from college was…" in [item.text for item in catalog["Friends"].items]

    def test_gated_items_hidden_inside_open_categories(self):
        catalog = {category.name: category for category in build_catalog()}
        assert "A great friend from college was…" not in [item.text for item in catalog["Friends"].items]

    def test_sensitive_categories_flagged(self):
        catalog = {category.name: category for category in build_catalog()}
        assert catalog["Dating"].sensitive
        assert not catalog["Advice"].sensitive

    def test_find_catalog_item(self):
        found = find_catalog_item("advice-1")
        assert found is not None
        category, item = found
        assert category == "Advice"
        assert item.text == "When life feels heavy, I remind myself that…"
        assert find_catalog_item("missing-1") is None


class TestDecadeFallback:
    def test_prefers_earliest_unrecorded_decade(self):
        prompt = decade_fallback(1950, [1955, 1962], current_year=1985)
        assert prompt is not None
        assert prompt.decade == 1970
        assert prompt.prompt_text == "What do you remember most about 1970?"
        assert prompt.context_note == "A memory from the 1970s"
        assert prompt.anchor_entity == "1970s"
        assert prompt.tier == 0

    def test_all_recorded_uses_first_decade(self):
        prompt = decade_fallback(1950, [1950, 1960], current_year=1965)
        assert prompt is not None
        assert prompt.prompt_text == "Tell me about a typical Saturday in the 1950s."
