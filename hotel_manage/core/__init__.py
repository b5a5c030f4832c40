"""
core — 与存储无关的安全抽象
"""
