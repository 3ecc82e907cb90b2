"""
porepath - Pore centre lines and radius profiles of molecular channels.

Pipeline per frame:
- Neighbour search over the frame's atom spheres
- Probe marching along the channel direction, maximising the free radius in
  every cross-section (simulated annealing + Nelder-Mead)
- Spline-based molecular path: centre line and radius over arclength

Usage:
    porepath --atoms frame_000.csv --output outputs
"""

__version__ = "1.0.0"
