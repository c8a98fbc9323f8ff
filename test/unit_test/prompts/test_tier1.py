from heritage_whisper.prompts import generate_anchor_hash, generate_tier1_prompts
from heritage_whisper.prompts.entities import extract_entities

TRANSCRIPT = (
    "My father taught me to fix engines in his workshop. "
    'Coach Miller said I was stubborn, and he always told me "measure twice and cut once" before a race. '
    "I felt so proud when we won."
)


class TestExtractEntities:
    def test_people_places_emotions_and_phrases(self):
        entities = extract_entities(TRANSCRIPT)

        assert "Coach Miller" in entities.people
        assert "My father" in entities.people
        assert "his workshop" in entities.places
        assert "proud" in entities.emotions
        assert "measure twice and cut once" in [p.text for p in entities.unique_phrases]

    def test_generic_words_and_pronouns_skipped(self):
        entities = extract_entities("She said the girl was in the house. He told me nothing.")
        assert entities.people == []
        assert entities.places == []

    def test_body_parts_are_not_objects(self):
        entities = extract_entities("I hurt my knee and lost my watch.")
        assert entities.objects == ["my watch"]


class TestAnchorHash:
    def test_fuzzy_names_share_a_hash(self):
        assert generate_anchor_hash("person_expansion", "Katie", 1960) == generate_anchor_hash(
            "person_expansion", "Katy", 1960
        )

    def test_year_and_type_change_the_hash(self):
        base = generate_anchor_hash("person_expansion", "Katie", 1960)
        assert base != generate_anchor_hash("person_expansion", "Katie", None)
        assert base != generate_anchor_hash("place_memory", "Katie", 1960)
        assert len(base) == 40


class TestGenerateTier1Prompts:
    def test_generates_up_to_three_prompts(self):
        prompts = generate_tier1_prompts(TRANSCRIPT, year=1962)

        assert len(prompts) == 3
        assert [p.memory_type for p in prompts] == ["person_expansion", "person_expansion", "place_memory"]
        assert all(p.tier == 1 for p in prompts)
        assert all(p.word_count <= 30 for p in prompts)
        assert prompts[0].anchor_hash == generate_anchor_hash("person_expansion", prompts[0].entity, 1962)

    def test_addresses_storyteller_relatives(self):
        prompts = generate_tier1_prompts(TRANSCRIPT, year=1962)
        father = next(p for p in prompts if p.entity == "My father")
        assert "your father" in father.text.lower()
        assert "my father" not in father.text.lower()

    def test_stable_template_choice(self):
        first = [p.text for p in generate_tier1_prompts(TRANSCRIPT, year=1962)]
        second = [p.text for p in generate_tier1_prompts(TRANSCRIPT, year=1962)]
        assert first == second

    def test_no_anchors_no_prompts(self):
        assert generate_tier1_prompts("it was a day like any other") == []
