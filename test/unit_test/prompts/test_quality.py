import pytest

from heritage_whisper.prompts.quality import (
    QualityIssueType,
    assess_prompt,
    filter_quality_prompts,
    is_valid_entity,
    is_worthy_entity,
    score_prompt_quality,
    validate_prompt_quality,
)


@pytest.mark.parametrize(
    "entity, expected",
    [
        ("girl", False),
        ("the house", False),
        ("my father", True),
        ("Grandpa's workshop", True),
        ("Coach Miller", True),
        ("workshop", True),
        ("a", False),
        ("", False),
        (None, False),
    ],
)
def test_is_worthy_entity(entity, expected):
    assert is_worthy_entity(entity) is expected


@pytest.mark.parametrize(
    "prompt, expected",
    [
        ("What did your father teach you about patience?", True),
        ("Did you like it?", False),
        ("Tell me more about that summer.", False),
        ("What did the girl say to you?", False),
        (" ".join(["word"] * 31) + "?", False),
        ("", False),
    ],
)
def test_validate_prompt_quality(prompt, expected):
    assert validate_prompt_quality(prompt) is expected


class TestScorePromptQuality:
    def test_proper_noun_and_depth_words_raise_score(self):
        assert score_prompt_quality("What did Coach Miller teach you?") == 65

    def test_intimacy_bonuses(self):
        assert score_prompt_quality("What did Coach Miller teach you?", uses_exact_phrase=True) == 85

    def test_score_is_clamped(self):
        assert score_prompt_quality("Tell me more about the house.") == 0


class TestAssessPrompt:
    def test_specific_prompt_passes(self):
        report = assess_prompt("You said 'the workshop was my church'. What did Dad build there first?")
        assert report.issues == []
        assert report.score == 100
        assert report.passed

    def test_generic_prompt_fails(self):
        report = assess_prompt("Tell me more about that.")
        assert [issue.type for issue in report.issues] == [QualityIssueType.GENERIC]
        assert report.score == 60
        assert not report.passed

    def test_single_minor_issue_passes(self):
        report = assess_prompt("What did that journey with Uncle Ray cost you?")
        assert [issue.type for issue in report.issues] == [QualityIssueType.THERAPY]
        assert report.passed

    def test_multiple_issues_fail(self):
        report = assess_prompt("Did you ever feel that journey shaped you?")
        assert {issue.type for issue in report.issues} == {QualityIssueType.THERAPY, QualityIssueType.YES_NO}
        assert report.score == 70
        assert not report.passed

    def test_broken_extraction_fails(self):
        report = assess_prompt("What did the said mean to Dad?")
        assert QualityIssueType.BROKEN in {issue.type for issue in report.issues}
        assert report.score == 0
        assert not report.passed

    def test_filter_quality_prompts(self):
        prompts = ["Tell me more about that.", "You said 'the workshop was my church'. What did Dad build there first?"]
        assert filter_quality_prompts(prompts) == prompts[1:]


@pytest.mark.parametrize(
    "entity, expected",
    [("Miller", True), ("the", False), ("said", False), ("to the", False), ("mom and", False), ("1960s", False)],
)
def test_is_valid_entity(entity, expected):
    assert is_valid_entity(entity) is expected
