"""
CBenef Extractor - Launcher Script

Runs the command-line interface from a source checkout without
installing the package.

Usage:
    python run.py states
    python run.py search --description leite
"""
import sys
from pathlib import Path

# Add src directory to Python path
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

from cbenef.main import app


if __name__ == "__main__":
    app()
