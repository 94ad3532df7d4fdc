"""Run with: python -m variantstore"""
from variantstore.main import run

run()
