"""Feature modules: readers, diffing, output handlers"""
