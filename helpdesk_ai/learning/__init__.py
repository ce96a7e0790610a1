"""
Learning Module
===============

Learning queue of resolved tickets and the knowledge miner that turns them
into draft knowledge articles.
"""
