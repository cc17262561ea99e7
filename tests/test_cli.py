"""Smoke tests for the command-line playback."""

import pytest

from mlplayback.__main__ import build_parser, main


class TestCli:

    @pytest.mark.parametrize("argv,header", [
        (['tree', '--n-samples', '40', '--max-depth', '3'], 'TREE'),
        (['tree', '--dataset', 'regression', '--n-samples', '30'], 'TREE'),
        (['forest', '--n-samples', '40', '--n-trees', '3'], 'FOREST'),
        (['boosting', '--n-samples', '30', '--n-estimators', '4'], 'BOOSTING'),
        (['boosting', '--dataset', 'moons', '--n-samples', '30'], 'BOOSTING'),
        (['perceptron', '--n-samples', '20', '--activation', 'sigmoid', '--epochs', '5'],
         'PERCEPTRON'),
        (['attention', '--seq-len', '3', '--causal'], 'ATTENTION'),
    ])
    def test_runs(self, argv, header, capsys):
        assert main(argv) == 0
        out = capsys.readouterr().out
        assert header in out
        assert '   0  ' in out

    def test_prints_one_line_per_snapshot(self, capsys):
        main(['perceptron', '--n-samples', '20', '--activation', 'sigmoid', '--epochs', '4'])
        lines = [line for line in capsys.readouterr().out.splitlines()
                 if line[:4].strip().isdigit()]
        assert len(lines) == 5

    def test_config_error_exit_code(self, capsys):
        assert main(['perceptron', '--learning-rate', '0']) == 2
        assert 'learning_rate' in capsys.readouterr().err

    def test_bad_head_count(self, capsys):
        assert main(['attention', '--d-model', '6', '--n-heads', '4']) == 2

    def test_save(self, tmp_path, capsys):
        target = tmp_path / 'forest.png'
        assert main(['forest', '--n-samples', '30', '--n-trees', '2',
                     '--save', str(target)]) == 0
        assert target.exists()

    def test_algorithm_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
