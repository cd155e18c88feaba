"""FastAPI 依赖"""
