"""API 数据模型"""
