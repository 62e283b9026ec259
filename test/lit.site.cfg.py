import os
import shutil

# Get the test directory and project directory dynamically
script_dir = os.path.dirname(os.path.abspath(__file__))
project_dir = os.path.dirname(script_dir)

config.tx2uml_dir = project_dir

# Find tx2uml dynamically
if shutil.which('tx2uml'):
    config.tx2uml = shutil.which('tx2uml')
elif os.path.exists(os.path.join(project_dir, 'MyEnv', 'bin', 'tx2uml')):
    config.tx2uml = os.path.join(project_dir, 'MyEnv', 'bin', 'tx2uml')
else:
    config.tx2uml = None
config.test_transactions = {
    "delegate_tx": "0x9c1492ef35d466017f5ab750585c2ab49b74b228e53a1cb4861186b88270e61c",
    "indexer_tx": "0x753cd9fb4c250affd3f59fb141255e5802ee2b9214f604ec5782c1aac02015b3",
}
config.plantuml_path = os.environ.get('PLANTUML_PATH') or 'plantuml'

# Load the main config
lit_config.load_config(config, os.path.join(script_dir, "lit.cfg.py"))
