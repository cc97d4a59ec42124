"""
Unit Tests for Declared Requirements
Every runtime requirement must be imported somewhere in the package
"""

import ast
import re
import unittest
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]

IMPORT_NAMES = {
    'scikit-learn': 'sklearn',
    'pyyaml': 'yaml',
    'python-dotenv': 'dotenv',
}
TEST_ONLY = {'pytest', 'pytest-cov'}


def declared_requirements():
    names = []
    for line in (ROOT / 'requirements.txt').read_text().splitlines():
        line = line.split('#', 1)[0].strip()
        if line:
            names.append(re.split(r'[<>=!~\[;\s]', line, 1)[0].lower())
    return names


def imported_modules():
    modules = set()
    for path in (ROOT / 'src' / 'equipment_health').rglob('*.py'):
        for node in ast.walk(ast.parse(path.read_text(encoding='utf-8'))):
            if isinstance(node, ast.Import):
                modules.update(alias.name.split('.')[0] for alias in node.names)
            elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
                modules.add(node.module.split('.')[0])
    return modules


@pytest.mark.unit
class TestRequirements(unittest.TestCase):
    """Test cases for requirements.txt against the package imports"""

    def test_runtime_requirements_are_imported(self):
        modules = imported_modules()
        unused = [
            name for name in declared_requirements()
            if name not in TEST_ONLY and IMPORT_NAMES.get(name, name) not in modules
        ]
        self.assertEqual(unused, [])

    def test_no_hdf5_dependency(self):
        self.assertNotIn('h5py', declared_requirements())
        self.assertNotIn('h5py', (ROOT / 'setup.py').read_text())


if __name__ == '__main__':
    unittest.main()
