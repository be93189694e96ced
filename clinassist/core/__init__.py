"""
Core Package - clinical rules, reasoning backends and orchestration
"""
