"""
Integracion con la REST API de Airtable (record store de la clinica).

- airtable_client: cliente HTTP con paginacion, backoff y timeout
- formulas: construccion de filterByFormula con escape seguro
"""
