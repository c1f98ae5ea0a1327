"""
Canned carrier responses shaped like the real Canpar, eShipPlus and
Polaris Transportation rating APIs.
"""
import json

CANPAR_ACCESSORIALS = {
    "carbon_surcharge": "0.0",
    "cod_charge": "0.0",
    "cos_charge": "0.0",
    "dg_charge": "0.0",
    "dv_charge": "1.25",
    "ea_charge": "0.0",
    "handling": "0.0",
    "lg_charge": "0.0",
    "over_length_charge": "0.0",
    "over_size_charge": "0.0",
    "over_weight_charge": "0.0",
    "premium_charge": "0.0",
    "ra_charge": "4.50",
    "rural_charge": "0.0",
    "sa_charge": "0.0",
    "sr_charge": "0.0",
    "xc_charge": "2.00",
}


def canpar_rate_response(
    service_type=1,
    freight_charge="42.10",
    fuel_surcharge="8.35",
    total="66.48",
    billed_weight="50.0",
    accessorials=None,
    error_xml='<ax25:error xsi:nil="true"/>',
):
    """A rateShipment response; the error element is nil unless overridden"""
    charges = dict(CANPAR_ACCESSORIALS)
    charges.update(accessorials or {})
    charge_xml = "".join(f"<ax27:{name}>{value}</ax27:{name}>" for name, value in charges.items())
    return f"""<?xml version='1.0' encoding='UTF-8'?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">
  <soapenv:Body>
    <ns:rateShipmentResponse xmlns:ns="http://ws.onlinerating.canshipws.canpar.com"
        xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
        xmlns:ax25="http://ws.dto.canshipws.canpar.com/xsd"
        xmlns:ax27="http://dto.canshipws.canpar.com/xsd">
      <ns:return>
        {error_xml}
        <ax25:processShipmentResult>
          <ax27:shipment>
            <ax27:billed_weight>{billed_weight}</ax27:billed_weight>
            {charge_xml}
            <ax27:estimated_delivery_date>2026-10-22T00:00:00.000Z</ax27:estimated_delivery_date>
            <ax27:freight_charge>{freight_charge}</ax27:freight_charge>
            <ax27:fuel_surcharge>{fuel_surcharge}</ax27:fuel_surcharge>
            <ax27:service_type>{service_type}</ax27:service_type>
            <ax27:shipping_date>2026-10-20T00:00:00.000Z</ax27:shipping_date>
            <ax27:subtotal>58.20</ax27:subtotal>
            <ax27:tax_charge_1>8.28</ax27:tax_charge_1>
            <ax27:tax_charge_2>0.0</ax27:tax_charge_2>
            <ax27:tax_code_1>HST</ax27:tax_code_1>
            <ax27:tax_code_2 xsi:nil="true"/>
            <ax27:total>{total}</ax27:total>
            <ax27:transit_time>2</ax27:transit_time>
            <ax27:transit_time_guaranteed>false</ax27:transit_time_guaranteed>
            <ax27:zone>3</ax27:zone>
            <ax27:pickup_address>
              <ax27:address_line_1>100 King St W</ax27:address_line_1>
              <ax27:city>Toronto</ax27:city>
              <ax27:country>CA</ax27:country>
              <ax27:name>Acme Widgets</ax27:name>
              <ax27:postal_code>M5X1A9</ax27:postal_code>
              <ax27:province>ON</ax27:province>
            </ax27:pickup_address>
            <ax27:delivery_address>
              <ax27:address_line_1>1 Place Ville Marie</ax27:address_line_1>
              <ax27:city>Montreal</ax27:city>
              <ax27:country>CA</ax27:country>
              <ax27:name>Maple Retail</ax27:name>
              <ax27:postal_code>H3B2B6</ax27:postal_code>
              <ax27:province>QC</ax27:province>
            </ax27:delivery_address>
          </ax27:shipment>
        </ax25:processShipmentResult>
      </ns:return>
    </ns:rateShipmentResponse>
  </soapenv:Body>
</soapenv:Envelope>"""


CANPAR_APPLICATION_ERROR = canpar_rate_response(
    error_xml="<ax25:error>Invalid postal code for delivery address</ax25:error>",
)

CANPAR_SOAP_FAULT = """<?xml version='1.0' encoding='UTF-8'?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">
  <soapenv:Body>
    <soapenv:Fault>
      <faultcode>soapenv:Server</faultcode>
      <faultstring>Authentication failed for user canpar_user</faultstring>
    </soapenv:Fault>
  </soapenv:Body>
</soapenv:Envelope>"""

CANPAR_EMPTY_RETURN = """<?xml version='1.0' encoding='UTF-8'?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">
  <soapenv:Body>
    <ns:somethingElse xmlns:ns="http://ws.onlinerating.canshipws.canpar.com"/>
  </soapenv:Body>
</soapenv:Envelope>"""


def _eshipplus_rate(quote_id, carrier, scac, total, freight, fuel, accessorial, transit, **extra):
    rate = {
        "QuoteId": quote_id,
        "CarrierName": carrier,
        "CarrierScac": scac,
        "ServiceMode": 1,
        "TransitTime": transit,
        "EstimatedDeliveryDate": "2026-10-24T00:00:00",
        "GuaranteedService": False,
        "GuaranteeCharge": 0,
        "FreightCharges": freight,
        "FuelCharges": fuel,
        "ServiceCharges": 0,
        "AccessorialCharges": accessorial,
        "TotalCharges": total,
        "BilledWeight": 500,
        "RatedWeight": 500,
        "Mileage": 967,
    }
    rate.update(extra)
    return rate


ESHIPPLUS_RATES = {
    "ContainsErrorMessage": False,
    "Messages": [],
    "BookingReferenceNumber": "PO-1001",
    "BookingReferenceNumberType": 2,
    "ShipmentBillType": 0,
    "ShipmentDate": "2026-10-20T00:00:00",
    "EarliestPickup": {"Time": "09:00"},
    "LatestPickup": {"Time": "17:00"},
    "EarliestDelivery": {"Time": "09:00"},
    "LatestDelivery": {"Time": "17:00"},
    "Origin": {
        "Description": "Acme Widgets",
        "Street": "200 Main St",
        "City": "Chicago",
        "State": "IL",
        "PostalCode": "60601",
        "Country": {"Code": "US"},
        "Contact": "Jane Shipper",
    },
    "Destination": {
        "Description": "Acme Widgets",
        "Street": "200 Main St",
        "City": "Dallas",
        "State": "TX",
        "PostalCode": "75201",
        "Country": {"Code": "US"},
        "Contact": "Marc Receiver",
    },
    "Items": [
        {
            "Description": "Widgets",
            "Weight": 500,
            "Length": 48,
            "Width": 40,
            "Height": 48,
            "PackagingQuantity": 1,
            "FreightClass": {"FreightClass": 70},
            "DeclaredValue": 0,
            "Stackable": False,
        }
    ],
    "AvailableRates": [
        _eshipplus_rate("Q-1", "Estes Express", "EXLA", 412.55, 350.00, 52.55, 10.00, 3),
        _eshipplus_rate(
            "Q-2", "Old Dominion", "ODFL", 389.10, 0, 0, 0, 2,
            FreightCharges=None,
            FuelCharges=None,
            Costs={"FreightCharges": 330.00, "FuelCharges": 59.10},
            BillingDetails=[
                {"BillingCode": "400", "Description": "Line Haul", "Category": 0, "AmountDue": 330.00},
                {"BillingCode": "FSC", "Description": "Fuel Surcharge", "Category": 1, "AmountDue": 59.10},
                {"BillingCode": "DISC", "Description": "Discount", "Category": 0, "AmountDue": 0},
            ],
        ),
        _eshipplus_rate("Q-3", "Saia", "SAIA", 455.00, 400.00, 55.00, 0, 4),
    ],
}

ESHIPPLUS_CONTAINS_ERROR = {
    "ContainsErrorMessage": True,
    "Messages": [{"Type": 0, "Text": "Destination postal code is not serviced"}],
    "AvailableRates": [],
}

POLARIS_RATE = {
    "Rate_API_Response": {
        "Error": "N",
        "Message": "",
        "Bill_Number": "Q123456",
        "From_PC_ZIP": "L4T1A1",
        "To_PC_ZIP": "48226",
        "Pickup_Date": "2026-10-20",
        "Delivery_Date": "2026-10-23",
        "ServiceDays": "3",
        "Description": "Auto parts",
        "Total_Weight_lbs": "800",
        "Pallets": "2",
        "Base_Charge": "310.00",
        "Fuel_Charge": "62.00",
        "Border_Charge": "25.00",
        "Arbitrary_Charge_Total": "0",
        "Additional_Services": [
            {"Charge": "Liftgate Delivery", "Charge_Amount": "45.00"},
        ],
        "Additional_Services_Total": "45.00",
        "Total_Charge": "442.00",
    }
}

POLARIS_ERROR = {"Error": "Y", "Message": "Destination not serviced", "Total_Charge": "0"}

POLARIS_ZERO_CHARGE = {"Error": "N", "Message": "", "Total_Charge": "0", "Bill_Number": "Q0"}

POLARIS_INVALID_KEY = {"Error": "Y", "Message": "INVALID API KEY"}


def as_json(data) -> str:
    return json.dumps(data)
