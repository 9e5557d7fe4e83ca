"""
PlantGate CLI Entry Point
=========================

Allows running plantgate as a module: python -m plantgate
"""

from plantgate.cli import main

if __name__ == "__main__":
    main()
