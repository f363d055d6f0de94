"""Layout pipeline: intent → constraints → placement → layering.

  intent.py    — constraint generation from a placement request
  solver.py    — multi-strategy cell search
  layering.py  — topological layer assignment
  types.py     — shared vocabulary
"""
