"""领域事件工厂（Run / App）"""
