# -*- Python -*-

import os
import platform
import shutil
import sys

import lit.formats

# Configuration file for the 'lit' test runner.

# name: The name of this test suite.
config.name = 'tx2uml'

# testFormat: The test format to use to interpret tests.
config.test_format = lit.formats.ShTest(True)

# suffixes: A list of file extensions to treat as test files.
config.suffixes = ['.test']

# test_source_root: The root path where tests are located.
config.test_source_root = os.path.dirname(__file__)

# test_exec_root: The root path where tests should be run.
config.test_exec_root = os.path.join(config.test_source_root, 'Output')

# Find tx2uml
if hasattr(config, 'tx2uml') and config.tx2uml:
    tx2uml_path = config.tx2uml
else:
    tx2uml_path = shutil.which('tx2uml')

if tx2uml_path:
    config.substitutions.append(('%tx2uml', tx2uml_path))
else:
    config.substitutions.append(('%tx2uml', f'{sys.executable} -m tx2uml.cli.main'))

# Test directories
config.substitutions.append(('%S', config.test_source_root))
config.substitutions.append(('%p', config.test_source_root))
config.substitutions.append(('%{inputs}', os.path.join(config.test_source_root, 'Inputs')))

# Transaction hashes used by the fixtures
if hasattr(config, 'test_transactions'):
    for key, value in config.test_transactions.items():
        config.substitutions.append(('%{' + key + '}', value))

# Project root directory (parent of test directory)
project_root = os.path.dirname(config.test_source_root)
config.substitutions.append(('%{project_root}', project_root))

# Platform-specific features
if platform.system() == 'Darwin':
    config.available_features.add('darwin')
elif platform.system() == 'Linux':
    config.available_features.add('linux')

# Check if PlantUML is available for png/svg rendering tests
if shutil.which(getattr(config, 'plantuml_path', 'plantuml')):
    config.available_features.add('plantuml')

# Add 'not' command
not_path = shutil.which('not')
if not not_path:
    # Try common locations
    for path in ['/usr/local/opt/llvm/bin', '/opt/homebrew/opt/llvm/bin', '/usr/bin']:
        candidate = os.path.join(path, 'not')
        if os.path.exists(candidate):
            not_path = candidate
            break
if not_path:
    config.substitutions.append(('not', not_path))

# Find and add FileCheck
filecheck_path = None
for path in ['/usr/local/opt/llvm/bin', '/opt/homebrew/opt/llvm/bin', '/usr/bin']:
    candidate = os.path.join(path, 'FileCheck')
    if os.path.exists(candidate):
        filecheck_path = candidate
        break

if filecheck_path:
    config.substitutions.append(('FileCheck', filecheck_path))
else:
    filecheck_path = shutil.which('FileCheck')
    config.substitutions.append(('FileCheck', filecheck_path or 'FileCheck'))

# No colors or config files from the environment leak into the tests
config.environment['NO_COLOR'] = '1'
for name in ('TX2UML_SOURCE', 'TX2UML_NODE_URL', 'TX2UML_NETWORK',
             'TX2UML_INDEXER_URL', 'TX2UML_INDEXER_API_KEY'):
    config.environment.pop(name, None)
config.environment['PYTHONPATH'] = os.pathsep.join(
    [os.path.join(project_root, 'src')] + sys.path
)
