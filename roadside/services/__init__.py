"""Domain operations behind the blueprints and socket handlers"""
