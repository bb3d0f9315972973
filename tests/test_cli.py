import pytest

from virtmem.cli import main

SMALL = ["--pages", "4", "--frames", "2", "--tlb-size", "2", "--page-size", "256"]


@pytest.fixture
def addresses_file(tmp_path):
    path = tmp_path / "addresses.txt"
    path.write_text("0\n256\n0\n512\n")
    return path


class TestMain:
    """End-to-end runs of the virtmem command."""

    def test_trace_and_summary(self, backing_file, addresses_file, capsys) -> None:
        assert main([str(backing_file), str(addresses_file), *SMALL]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "Virtual address: 0 Physical address: 0 Value: 0",
            "Virtual address: 256 Physical address: 256 Value: 31",
            "Virtual address: 0 Physical address: 0 Value: 0",
            "Virtual address: 512 Physical address: 0 Value: 62",
            "Number of Translated Addresses = 4",
            "Page Faults = 3",
            "Page Fault Rate = 0.750",
            "TLB Hits = 1",
            "TLB Hit Rate = 0.250",
        ]

    @pytest.mark.parametrize("flag", ["1", "lru"])
    def test_lru_flag(self, backing_file, addresses_file, capsys, flag) -> None:
        assert main([str(backing_file), str(addresses_file), "-p", flag, *SMALL]) == 0
        assert "Page Faults = 3" in capsys.readouterr().out

    def test_malformed_lines_skipped(self, backing_file, tmp_path, capsys) -> None:
        path = tmp_path / "addresses.txt"
        path.write_text("0\nabc\n\n256\n")
        assert main([str(backing_file), str(path), *SMALL]) == 0
        captured = capsys.readouterr()
        assert "Number of Translated Addresses = 2" in captured.out
        assert "'abc'" in captured.err

    def test_undecodable_line_skipped(self, backing_file, tmp_path, capsys) -> None:
        path = tmp_path / "addresses.txt"
        path.write_bytes(b"0\n\xff\xfe\n256\n")
        assert main([str(backing_file), str(path), *SMALL]) == 0
        captured = capsys.readouterr()
        assert "Number of Translated Addresses = 2" in captured.out
        assert "Skipping" in captured.err

    def test_empty_input(self, backing_file, tmp_path, capsys) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("")
        assert main([str(backing_file), str(path), *SMALL]) == 0
        assert "TLB Hit Rate = N/A" in capsys.readouterr().out

    def test_backing_store_too_small(self, backing_file, addresses_file, capsys) -> None:
        # Default sizes need a 1 MiB backing store
        assert main([str(backing_file), str(addresses_file)]) == 1
        assert "Error" in capsys.readouterr().err

    def test_missing_address_file(self, backing_file, tmp_path, capsys) -> None:
        assert main([str(backing_file), str(tmp_path / "missing.txt"), *SMALL]) == 1
        assert "Error" in capsys.readouterr().err

    @pytest.mark.parametrize("extra", [
        ["--frames", "0"],
        ["--page-size", "300"],
        ["-p", "opt"],
        ["--plot", "chart.png"],
    ])
    def test_bad_arguments(self, backing_file, addresses_file, extra) -> None:
        with pytest.raises(SystemExit) as info:
            main([str(backing_file), str(addresses_file), *SMALL, *extra])
        assert info.value.code == 2

    def test_compare_with_plot(self, backing_file, addresses_file, tmp_path, capsys) -> None:
        chart = tmp_path / "chart.png"
        assert main([str(backing_file), str(addresses_file), *SMALL,
                     "--compare", "--plot", str(chart)]) == 0
        out = capsys.readouterr().out
        assert "FIFO" in out and "LRU" in out
        assert chart.exists()

    def test_unwritable_plot_path(self, backing_file, addresses_file, tmp_path, capsys) -> None:
        chart = tmp_path / "no_such_dir" / "chart.png"
        assert main([str(backing_file), str(addresses_file), *SMALL,
                     "--compare", "--plot", str(chart)]) == 1
        err = capsys.readouterr().err
        assert "Error saving chart" in err
        assert str(addresses_file) not in err
