"""Gateway HTTP 路由"""
