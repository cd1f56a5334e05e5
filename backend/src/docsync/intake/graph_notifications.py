"""Microsoft Graph change-notification payloads.

Example body POSTed by Graph to the notification URL:

    {
      "value": [
        {
          "subscriptionId": "7f105c7d-...",
          "changeType": "created",
          "clientState": "secret",
          "resource": "Users/{user-id}/Messages/AAMkAGU...",
          "resourceData": {"@odata.type": "#Microsoft.Graph.Message", "id": "AAMkAGU..."}
        }
      ]
    }
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ResourceData(BaseModel):
    id: Optional[str] = Field(None, description="Id of the changed resource")
    odata_type: Optional[str] = Field(None, alias="@odata.type")

    class Config:
        populate_by_name = True
        extra = "ignore"


class ChangeNotification(BaseModel):
    """One change notification for a mail item."""
    subscription_id: Optional[str] = Field(None, alias="subscriptionId")
    change_type: str = Field(..., alias="changeType", min_length=1)
    client_state: Optional[str] = Field(None, alias="clientState")
    resource: str = Field(..., min_length=1, description="Relative path of the changed item")
    resource_data: Optional[ResourceData] = Field(None, alias="resourceData")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def is_created(self) -> bool:
        return self.change_type.strip().lower() == "created"

    @property
    def message_id(self) -> Optional[str]:
        """Mail item id: resourceData.id, else the last segment of resource."""
        if self.resource_data and self.resource_data.id:
            return self.resource_data.id
        segment = self.resource.rstrip("/").split("/")[-1]
        return segment or None


class ChangeNotificationCollection(BaseModel):
    value: List[ChangeNotification]

    class Config:
        extra = "ignore"
