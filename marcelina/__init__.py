"""Marcelina System - gestão de insumos, produtos, vendas e contas de uma confeitaria."""

__version__ = '1.0.0'
