"""Unit tests for console formatting helpers."""

import pytest
from dustpan.filesystem.models import Safety
from dustpan.utils.formatting import THEME, create_table, format_safety, format_size


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (None, "0 B"),
            (0, "0 B"),
            (512, "512 B"),
            (1536, "1.5 KB"),
            (5 * 1024**2, "5.0 MB"),
            (3 * 1024**3, "3.0 GB"),
            (2 * 1024**4, "2.0 TB"),
        ],
    )
    def test_format(self, size: int | None, expected: str) -> None:
        """Sizes are shown in the largest sensible unit."""
        assert format_size(size) == expected


class TestFormatSafety:
    """Tests for format_safety function."""

    def test_markup_uses_theme_style(self) -> None:
        """Each safety level maps to a theme style."""
        for safety in Safety:
            markup = format_safety(safety)
            assert markup == f"[safety.{safety.value}]{safety.value}[/]"
            assert f"safety.{safety.value}" in THEME.styles


class TestCreateTable:
    """Tests for create_table function."""

    def test_table_title(self) -> None:
        """Tables carry the given title and show a header."""
        table = create_table("Deletion History")
        assert table.title == "Deletion History"
        assert table.show_header is True
