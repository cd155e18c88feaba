"""授权服务适配器"""
