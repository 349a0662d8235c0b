"""
Vekkam - exam-first study engine.

Turns uploaded study material into synthesized notes, Bloom's taxonomy
quizzes and retrieval-grounded tutoring, backed by tiered text-generation
backends.
"""

__version__ = "0.1.0"
