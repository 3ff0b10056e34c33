#!/usr/bin/env python
"""
Test runner script for the whole suite or selected apps
Usage: python Doc/run_tests.py [app ...]   e.g. python Doc/run_tests.py inventory finance
"""
import os
import sys
from pathlib import Path

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'erp.core',
    'erp.branches',
    'erp.catalog',
    'erp.parties',
    'erp.purchasing',
    'erp.sales',
    'erp.finance',
    'erp.inventory',
    'erp.reports',
    'erp.messaging',
]

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'erp.config.settings')
    django.setup()
    labels = [f'erp.{name}' if not name.startswith('erp.') else name for name in sys.argv[1:]] or APPS
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests(labels)
    sys.exit(bool(failures))
