"""
Request and response models. Wire keys are camelCase (see common.CamelModel).
"""
