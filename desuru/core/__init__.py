"""Deployment stages and host tooling"""
