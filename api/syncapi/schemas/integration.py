from syncapi.schemas.sync import CamelModel


class IntegrationOut(CamelModel):
    vendor_id: str
    api_key: str
    script: str
    embed_snippet: str
    instructions: str
