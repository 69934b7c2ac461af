"""
Tests for the command-line interface.
"""

import pytest
import pandas as pd
import yaml
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent / "src"))

from site_ingest.cli import create_parser, main


def write_run_config(path, data_directory, sites, output):
    path.write_text(yaml.dump({
        'processing': {'data_directory': str(data_directory), 'output_file': str(output)},
        'sources': {
            'etopo1': {},
            'co2': {'year_start': 2000, 'year_end': 2009},
        },
        'sites': [{'id': s.id, 'lon': s.lon, 'lat': s.lat} for s in sites],
    }))
    return path


def test_parser_commands():
    """Test that all subcommands parse"""
    parser = create_parser()
    args = parser.parse_args(['run', '--config', 'run.yaml', '--max-workers', '2'])
    assert args.command == 'run'
    assert args.max_workers == 2

    assert parser.parse_args(['create-config']).path == 'site_ingest_config.yaml'


def test_no_command_returns_error():
    """Test that a missing command prints help and fails"""
    assert main([]) == 1


def test_list_sources(capsys):
    """Test listing of sources and variables"""
    assert main(['list-sources']) == 0
    output = capsys.readouterr().out
    for source in ('etopo1', 'worldclim', 'soilgrids', 'ndep', 'co2'):
        assert source in output
    assert 'vapr' in output


def test_create_config(tmp_path):
    """Test writing the configuration template"""
    path = tmp_path / 'template.yaml'
    assert main(['create-config', str(path)]) == 0
    assert path.exists()


def test_run_writes_site_table(tmp_path, etopo_dir, co2_dir, sites):
    """Test a full run from a configuration file"""
    output = tmp_path / 'site_table.csv'
    config_file = write_run_config(tmp_path / 'run.yaml', tmp_path, sites, output)
    summary = tmp_path / 'summary.json'

    assert main(['run', '--config', str(config_file), '--summary', str(summary)]) == 0

    table = pd.read_csv(output)
    assert list(table.columns) == ['sitename', 'lon', 'lat', 'elv', 'co2']
    assert list(table['elv']) == [420.0, 270.0, 480.0]
    # 2000-2009 mean of 350 + 2 * (year - 1990)
    assert table['co2'].tolist() == pytest.approx([379.0] * 3)
    assert summary.exists()


def test_run_output_override(tmp_path, etopo_dir, co2_dir, sites):
    """Test that --output overrides the configured output file"""
    config_file = write_run_config(tmp_path / 'run.yaml', tmp_path, sites, tmp_path / 'ignored.csv')
    output = tmp_path / 'table.nc'

    assert main(['run', '--config', str(config_file), '--output', str(output)]) == 0
    assert output.exists()
    assert not (tmp_path / 'ignored.csv').exists()


def test_run_invalid_config(tmp_path):
    """Test that configuration errors exit with code 1"""
    config_file = tmp_path / 'run.yaml'
    config_file.write_text(yaml.dump({'processing': {'max_workers': 0}}))

    assert main(['run', '--config', str(config_file)]) == 1
    assert main(['run', '--config', str(tmp_path / 'missing.yaml')]) == 1


def test_run_non_integer_layers(tmp_path, sites):
    """Test that non-integer soil layers exit with code 1"""
    config_file = tmp_path / 'run.yaml'
    config_file.write_text(yaml.dump({
        'sources': {'soilgrids': {'layers': ['top']}},
        'sites': [{'id': s.id, 'lon': s.lon, 'lat': s.lat} for s in sites],
    }))

    assert main(['run', '--config', str(config_file)]) == 1


def test_run_without_sites(tmp_path):
    """Test that a run without sites fails"""
    config_file = tmp_path / 'run.yaml'
    config_file.write_text(yaml.dump({'sources': {'etopo1': {}}}))

    assert main(['run', '--config', str(config_file)]) == 1


if __name__ == '__main__':
    pytest.main([__file__])
