"""Unit tests for the numbered-list name parser."""

from namesmith.adapters.parsing import NameParser, parse_names


class TestNameParser:
    """Tests for NameParser."""

    def test_numbered_lines(self):
        """Both '1.' and '1)' numbering are accepted."""
        text = "1. BrewHaven\n2) CafeNova\n3.   Bean Theory"
        assert parse_names(text) == ["BrewHaven", "CafeNova", "Bean Theory"]

    def test_markdown_and_quotes_are_stripped(self):
        text = '1. **BrewHaven**\n2. "CafeNova"\n3. `RoastLab`\n4. _Morning Ritual_'
        assert parse_names(text) == ["BrewHaven", "CafeNova", "RoastLab", "Morning Ritual"]

    def test_prose_lines_are_discarded(self):
        """Headings, bullets and commentary never become names."""
        text = (
            "Here are some ideas for your coffee shop:\n"
            "\n"
            "1. BrewHaven\n"
            "- CafeNova\n"
            "I hope these help!"
        )
        parsed = NameParser().parse(text)

        assert parsed.names == ["BrewHaven"]
        assert "- CafeNova" in parsed.discarded_lines
        assert "I hope these help!" in parsed.discarded_lines

    def test_limit(self):
        text = "\n".join(f"{i}. Name{i}" for i in range(1, 16))
        names = parse_names(text, limit=10)
        assert len(names) == 10
        assert names[-1] == "Name10"

    def test_empty_input(self):
        assert parse_names("") == []
        assert parse_names(None) == []
        assert NameParser().parse("   \n\n").is_empty

    def test_overlong_name_rejected(self):
        text = f"1. {'x' * 150}\n2. Short"
        assert parse_names(text) == ["Short"]

    def test_number_without_name_rejected(self):
        assert parse_names("1.\n2. Real Name") == ["Real Name"]
