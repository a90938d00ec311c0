"""Core services: seller feed, snapshot assembly, pricing and analysis"""
