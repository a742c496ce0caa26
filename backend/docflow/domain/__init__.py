"""Domain layer: document lifecycle rules, error taxonomy and collaborator ports"""
