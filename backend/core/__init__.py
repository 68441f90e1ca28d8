"""
核心模块
配置、数据库、错误码、鉴权边界与中间件
"""
