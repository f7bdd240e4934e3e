"""
Tests for the batch runner command line interface.
"""

import json

import pytest

from multilog_runner import _parse_ideal, build_parser, main, run
from polynomial_ring import PolynomialRing


class TestParseIdeal:
    """Semicolon separated generators"""

    def test_parse(self):
        """Generators are split on semicolons"""
        R = PolynomialRing("x,y,z,t")
        I = _parse_ideal(R, "x*y; z*t")
        assert I == R.ideal("x*y", "z*t")

    def test_empty_input(self):
        """Empty generators are rejected"""
        R = PolynomialRing("x,y")
        with pytest.raises(ValueError, match="No generators"):
            _parse_ideal(R, " ; ")
        with pytest.raises(ValueError, match="Empty generator"):
            _parse_ideal(R, "x;;y")

    def test_unknown_variable(self):
        """Unknown variables are rejected"""
        R = PolynomialRing("x,y")
        with pytest.raises(ValueError):
            _parse_ideal(R, "x*w")


class TestRun:
    """End-to-end runs writing result files"""

    def test_forms_and_freeness(self, tmp_path):
        """Full run writes module, LaTeX, vector fields and metadata"""
        prefix = tmp_path / "out" / "nc"
        main([
            "--vars", "x,y,z,t",
            "--ideal", "x*y;z*t",
            "--degree", "2",
            "--free",
            "--latex",
            "--out-prefix", str(prefix),
        ])
        meta = json.loads((tmp_path / "out" / "nc.meta.json").read_text(encoding="utf-8"))
        assert meta["vars"] == ["x", "y", "z", "t"]
        assert meta["codim"] == 2
        assert meta["omega"]["kind"] == "module"
        assert meta["omega"]["rank"] == 6
        assert meta["free"] is True
        assert meta["derlog"]["resolution_length"] == 2
        assert meta["timing"]["omegalog_c"]["call_count"] == 1
        # the freeness flag reuses the vector field resolution
        assert meta["timing"]["is_free_singularity"]["call_count"] == 1
        assert meta["timing"]["derlog"]["call_count"] == 1
        assert "complete_intersection" not in meta

        omega = (tmp_path / "out" / "nc.omega.txt").read_text(encoding="utf-8")
        assert omega.startswith("# rank 6")
        assert (tmp_path / "out" / "nc.omega.tex").exists()
        assert (tmp_path / "out" / "nc.derlog.txt").exists()

    def test_built_complete_intersection(self, tmp_path):
        """The built complete intersection is recorded"""
        args = build_parser().parse_args([
            "--vars", "x,y,z",
            "--ideal", "x*y;x*z;y*z",
            "--degree", "0",
            "--seed", "7",
            "--forms",
            "--out-prefix", str(tmp_path / "axes"),
        ])
        meta = run(args)
        assert len(meta["complete_intersection"]) == 2
        assert meta["omega"]["kind"] == "forms"
        assert "derlog" not in meta
        assert not (tmp_path / "axes.derlog.txt").exists()
        assert (tmp_path / "axes.omega.txt").exists()

    def test_supplied_complete_intersection(self, tmp_path):
        """--ci selects omegalog_xc"""
        args = build_parser().parse_args([
            "--vars", "x,y,z",
            "--ideal", "x*y;x*z;y*z",
            "--ci", "x*y;x*z + y*z",
            "--degree", "1",
            "--out-prefix", str(tmp_path / "axes"),
        ])
        meta = run(args)
        assert meta["complete_intersection"] == ["x*y", "x*z + y*z"]
        assert meta["timing"]["omegalog_xc"]["call_count"] == 1
        assert meta["timing"]["eqdim_ci"]["call_count"] == 0


class TestArgumentErrors:
    """Invalid command lines exit through argparse"""

    def test_negative_degree(self, tmp_path, capsys):
        """Negative degrees exit with an error"""
        with pytest.raises(SystemExit):
            main(["--vars", "x,y", "--ideal", "x", "--degree", "-1",
                  "--out-prefix", str(tmp_path / "r")])
        assert "--degree must be non-negative" in capsys.readouterr().err

    def test_bad_ideal(self, tmp_path, capsys):
        """Unparseable ideals exit with an error"""
        with pytest.raises(SystemExit):
            main(["--vars", "x,y", "--ideal", "x*w", "--out-prefix", str(tmp_path / "r")])
        assert "Error parsing --ideal" in capsys.readouterr().err

    def test_bad_order(self, tmp_path, capsys):
        """Unknown monomial orders exit with an error"""
        with pytest.raises(SystemExit):
            main(["--vars", "x,y", "--ideal", "x", "--order", "weird",
                  "--out-prefix", str(tmp_path / "r")])
        assert "Error parsing --vars/--order" in capsys.readouterr().err

    def test_missing_required(self):
        """--ideal is required"""
        with pytest.raises(SystemExit):
            main(["--vars", "x,y"])
