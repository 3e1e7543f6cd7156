"""
Core generation pipeline: argument grammar, member and method extraction,
descriptor resolution, emission and the engine driving them.
"""
