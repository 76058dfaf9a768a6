"""Sample records served when the platform service is unreachable.

The platform service seeds its in-memory store from the same records, so a
screen shows the same data whether it is talking to the service or not.
"""
import copy


RIDES = [
    {
        "id": "RIDE001",
        "customer": {"id": "CUST001", "name": "John Doe", "phone": "+1234567890", "rating": 4.8},
        "driver": {
            "id": "DRV001",
            "name": "Mike Wilson",
            "phone": "+1234567891",
            "rating": 4.9,
            "location": {"lat": 40.7128, "lng": -74.0060},
        },
        "driver_id": "DRV001",
        "pickup": {"address": "123 Main St, New York, NY", "lat": 40.7128, "lng": -74.0060},
        "destination": {"address": "456 Oak Ave, New York, NY", "lat": 40.7589, "lng": -73.9851},
        "status": "in_progress",
        "ride_type": "standard",
        "fare": 25.50,
        "distance": 5.2,
        "duration_estimate": 18,
        "created_at": "2025-09-14T14:30:00Z",
        "started_at": "2025-09-14T14:35:00Z",
        "completed_at": None,
        "payment_method": "credit_card",
        "surge_multiplier": 1.0,
        "notes": "Customer requested air conditioning",
        "timeline": [
            {"status": "pending", "timestamp": "2025-09-14T14:30:00Z", "location": None},
            {"status": "driver_assigned", "timestamp": "2025-09-14T14:31:00Z", "location": None},
            {"status": "in_progress", "timestamp": "2025-09-14T14:35:00Z", "location": None},
        ],
        "version": 3,
        "updated_at": "2025-09-14T14:35:00Z",
    },
    {
        "id": "RIDE002",
        "customer": {"id": "CUST002", "name": "Sarah Johnson", "phone": "+1234567892", "rating": 4.7},
        "driver": {
            "id": "DRV002",
            "name": "David Brown",
            "phone": "+1234567893",
            "rating": 4.6,
            "location": {"lat": 40.7282, "lng": -74.0776},
        },
        "driver_id": "DRV002",
        "pickup": {"address": "789 Pine Rd, New York, NY", "lat": 40.7505, "lng": -73.9934},
        "destination": {"address": "321 Elm St, New York, NY", "lat": 40.7282, "lng": -74.0776},
        "status": "completed",
        "ride_type": "standard",
        "fare": 18.75,
        "commission": 2.81,
        "distance": 3.8,
        "duration_estimate": 12,
        "created_at": "2025-09-14T13:15:00Z",
        "started_at": "2025-09-14T13:20:00Z",
        "completed_at": "2025-09-14T13:35:00Z",
        "payment_method": "cash",
        "surge_multiplier": 1.2,
        "tip": 3.00,
        "rating": {
            "customer_rating": 5,
            "driver_rating": 4,
            "customer_feedback": "Great ride!",
            "driver_feedback": "Pleasant customer",
        },
        "timeline": [
            {"status": "pending", "timestamp": "2025-09-14T13:15:00Z", "location": None},
            {"status": "driver_assigned", "timestamp": "2025-09-14T13:16:00Z", "location": None},
            {"status": "in_progress", "timestamp": "2025-09-14T13:20:00Z", "location": None},
            {"status": "completed", "timestamp": "2025-09-14T13:35:00Z", "location": None},
        ],
        "version": 4,
        "updated_at": "2025-09-14T13:35:00Z",
    },
    {
        "id": "RIDE003",
        "customer": {"id": "CUST003", "name": "Alex Chen", "phone": "+1234567894", "rating": 2.1},
        "driver": {"id": "DRV003", "name": "Robert Taylor", "phone": "+1234567895", "rating": 3.9, "location": None},
        "driver_id": "DRV003",
        "pickup": {"address": "555 Cedar Blvd, New York, NY", "lat": 40.7831, "lng": -73.9712},
        "destination": {"address": "777 Birch Way, New York, NY", "lat": 40.7549, "lng": -73.9840},
        "status": "cancelled",
        "ride_type": "economy",
        "fare": 0,
        "distance": 2.1,
        "duration_estimate": 0,
        "created_at": "2025-09-14T16:20:00Z",
        "cancelled_at": "2025-09-14T16:22:00Z",
        "payment_method": "cash",
        "surge_multiplier": 1.0,
        "cancellation_reason": "Driver not available",
        "cancelled_by": "driver",
        "timeline": [
            {"status": "pending", "timestamp": "2025-09-14T16:20:00Z", "location": None},
            {"status": "cancelled", "timestamp": "2025-09-14T16:22:00Z", "location": None},
        ],
        "version": 2,
        "updated_at": "2025-09-14T16:22:00Z",
    },
]


DRIVERS = [
    {
        "id": "DRV001",
        "name": "Mike Wilson",
        "email": "mike@email.com",
        "phone": "+1234567891",
        "status": "busy",
        "rating": 4.8,
        "total_rides": 234,
        "earnings": {"total": 2340.50, "this_month": 450.25},
        "vehicle": {"make": "Toyota", "model": "Camry", "year": 2020, "license_plate": "ABC123", "color": "White"},
        "documents": {
            "license": {"status": "approved", "expires": "2025-12-31"},
            "insurance": {"status": "approved", "expires": "2025-06-30"},
            "registration": {"status": "approved", "expires": "2025-10-15"},
        },
        "location": {"address": "New York, NY", "lat": 40.7128, "lng": -74.0060},
        "join_date": "2024-01-15",
        "last_active": "2025-09-14T16:30:00Z",
        "completion_rate": 96.5,
        "cancellation_rate": 2.1,
        "approved": True,
    },
    {
        "id": "DRV002",
        "name": "David Brown",
        "email": "david@email.com",
        "phone": "+1234567893",
        "status": "online",
        "rating": 4.6,
        "total_rides": 189,
        "earnings": {"total": 1890.25, "this_month": 380.50},
        "vehicle": {"make": "Honda", "model": "Civic", "year": 2019, "license_plate": "XYZ789", "color": "Blue"},
        "documents": {
            "license": {"status": "approved", "expires": "2026-03-15"},
            "insurance": {"status": "pending", "expires": "2025-11-30"},
            "registration": {"status": "approved", "expires": "2026-01-20"},
        },
        "location": {"address": "Manhattan, NY", "lat": 40.7589, "lng": -73.9851},
        "join_date": "2024-03-22",
        "last_active": "2025-09-14T16:25:00Z",
        "completion_rate": 94.2,
        "cancellation_rate": 3.5,
        "approved": True,
    },
    {
        "id": "DRV003",
        "name": "Robert Taylor",
        "email": "robert@email.com",
        "phone": "+1234567895",
        "status": "suspended",
        "rating": 3.9,
        "total_rides": 45,
        "earnings": {"total": 450.75, "this_month": 0},
        "vehicle": {"make": "Ford", "model": "Focus", "year": 2018, "license_plate": "DEF456", "color": "Black"},
        "documents": {
            "license": {"status": "approved", "expires": "2025-08-20"},
            "insurance": {"status": "expired", "expires": "2025-07-01"},
            "registration": {"status": "approved", "expires": "2025-12-01"},
        },
        "location": {"address": "Brooklyn, NY", "lat": 40.6782, "lng": -73.9442},
        "join_date": "2024-06-10",
        "last_active": "2025-09-10T12:00:00Z",
        "completion_rate": 82.3,
        "cancellation_rate": 12.7,
        "approved": False,
    },
]


CUSTOMERS = [
    {
        "id": "CUST001",
        "name": "John Doe",
        "email": "john.doe@email.com",
        "phone": "+1234567890",
        "status": "active",
        "rating": 4.8,
        "total_rides": 28,
        "total_spent": 542.30,
        "average_ride_cost": 19.37,
        "join_date": "2024-02-10",
        "last_ride": "2025-09-14T14:30:00Z",
        "favorite_locations": [
            {"name": "Home", "address": "123 Main St, New York, NY"},
            {"name": "Work", "address": "456 Oak Ave, New York, NY"},
        ],
        "payment_methods": [
            {"type": "card", "last4": "4532", "primary": True},
            {"type": "paypal", "email": "john.doe@email.com", "primary": False},
        ],
        "wallet_balance": 45.00,
    },
    {
        "id": "CUST002",
        "name": "Sarah Johnson",
        "email": "sarah.j@email.com",
        "phone": "+1234567892",
        "status": "active",
        "rating": 4.7,
        "total_rides": 15,
        "total_spent": 285.60,
        "average_ride_cost": 19.04,
        "join_date": "2024-05-18",
        "last_ride": "2025-09-14T13:15:00Z",
        "favorite_locations": [{"name": "Home", "address": "789 Pine Rd, New York, NY"}],
        "payment_methods": [{"type": "card", "last4": "8891", "primary": True}],
        "wallet_balance": 12.50,
    },
    {
        "id": "CUST003",
        "name": "Alex Chen",
        "email": "alex.chen@email.com",
        "phone": "+1234567894",
        "status": "banned",
        "rating": 2.1,
        "total_rides": 3,
        "total_spent": 45.20,
        "average_ride_cost": 15.07,
        "join_date": "2025-08-01",
        "last_ride": "2025-09-14T16:20:00Z",
        "favorite_locations": [],
        "payment_methods": [{"type": "card", "last4": "1123", "primary": True}],
        "wallet_balance": 0,
        "ban_reason": "Inappropriate behavior towards drivers",
        "ban_date": "2025-09-12T10:00:00Z",
    },
]


TRANSACTIONS = [
    {
        "id": "TXN001",
        "ride_id": "RIDE002",
        "customer_id": "CUST002",
        "driver_id": "DRV002",
        "type": "ride_payment",
        "amount": 18.75,
        "commission": 2.81,
        "status": "completed",
        "payment_method": "cash",
        "created_at": "2025-09-14T13:35:00Z",
    },
]


DASHBOARD_STATS = {
    "totalRides": 1247,
    "totalDrivers": 89,
    "totalCustomers": 156,
    "totalRevenue": 18650.75,
    "activeRides": 23,
    "onlineDrivers": 45,
    "completionRate": 94.2,
    "averageRating": 4.6,
    "dailyGrowth": 12.5,
    "weeklyGrowth": 8.3,
    "monthlyRevenue": 125400,
    "averageRideTime": 18.5,
    "peakHours": "5-7 PM",
    "cancelRate": 5.8,
}


RECENT_RIDES = [
    {
        "id": "R001", "customer": "John Doe", "driver": "Mike Wilson",
        "pickup": "123 Main St", "destination": "456 Oak Ave", "status": "completed",
        "fare": 25.50, "distance": "5.2 km", "duration": "18 min",
        "timestamp": "2025-09-14 14:30", "rating": 4.8,
    },
    {
        "id": "R002", "customer": "Sarah Johnson", "driver": "David Brown",
        "pickup": "789 Pine Rd", "destination": "321 Elm St", "status": "in-progress",
        "fare": 18.75, "distance": "3.8 km", "duration": "12 min",
        "timestamp": "2025-09-14 15:45", "rating": None,
    },
    {
        "id": "R003", "customer": "Alex Chen", "driver": "Robert Taylor",
        "pickup": "555 Cedar Blvd", "destination": "777 Birch Way", "status": "cancelled",
        "fare": 0, "distance": "2.1 km", "duration": "0 min",
        "timestamp": "2025-09-14 16:20", "rating": None,
    },
]


REVENUE_SERIES = [
    {"time": "00:00", "revenue": 1200, "rides": 15},
    {"time": "04:00", "revenue": 800, "rides": 8},
    {"time": "08:00", "revenue": 2400, "rides": 28},
    {"time": "12:00", "revenue": 3200, "rides": 35},
    {"time": "16:00", "revenue": 2800, "rides": 32},
    {"time": "20:00", "revenue": 3800, "rides": 42},
    {"time": "24:00", "revenue": 2200, "rides": 25},
]


_HOURLY = [45, 32, 28, 25, 30, 55, 98, 142, 185, 156, 134, 128,
           145, 138, 125, 142, 165, 198, 225, 201, 178, 145, 112, 78]

_DAILY_REVENUE = [
    (1, 3200, 45), (2, 4100, 58), (3, 3800, 52), (4, 4500, 63), (5, 5200, 71),
    (6, 6100, 84), (7, 5800, 79), (8, 4900, 67), (9, 5500, 76), (10, 6200, 85),
    (11, 5900, 81), (12, 4700, 64), (13, 5300, 73), (14, 4800, 66),
]

ANALYTICS = {
    "revenue": {
        "current": 125400,
        "previous": 98200,
        "growth": 27.7,
        "data": [
            {"date": f"2025-09-{day:02d}", "amount": amount, "rides": rides}
            for day, amount, rides in _DAILY_REVENUE
        ],
    },
    "rides": {
        "total": 2847,
        "completed": 2698,
        "cancelled": 149,
        "completion_rate": 94.8,
        "hourly_distribution": [{"hour": f"{h:02d}", "rides": n} for h, n in enumerate(_HOURLY)],
    },
    "drivers": {
        "total": 156,
        "active": 89,
        "performance": [
            {"rating": "5 Star", "count": 45, "percentage": 50.6},
            {"rating": "4+ Star", "count": 32, "percentage": 36.0},
            {"rating": "3+ Star", "count": 10, "percentage": 11.2},
            {"rating": "Below 3", "count": 2, "percentage": 2.2},
        ],
    },
    "customers": {
        "total": 1247,
        "new_this_month": 89,
        "retention_rate": 78.5,
        "satisfaction": [
            {"rating": "5 Star", "count": 892, "percentage": 71.5},
            {"rating": "4 Star", "count": 234, "percentage": 18.8},
            {"rating": "3 Star", "count": 87, "percentage": 7.0},
            {"rating": "2 Star", "count": 23, "percentage": 1.8},
            {"rating": "1 Star", "count": 11, "percentage": 0.9},
        ],
    },
    "geography": [
        {"area": "Manhattan", "rides": 1156, "revenue": 45200},
        {"area": "Brooklyn", "rides": 856, "revenue": 32400},
        {"area": "Queens", "rides": 534, "revenue": 18900},
        {"area": "Bronx", "rides": 201, "revenue": 7800},
        {"area": "Staten Island", "rides": 100, "revenue": 3200},
    ],
    "peak_hours": {
        "morning": {"start": "07:00", "end": "09:00", "avg_rides": 165},
        "lunch": {"start": "12:00", "end": "14:00", "avg_rides": 132},
        "evening": {"start": "17:00", "end": "20:00", "avg_rides": 201},
    },
}


DRIVER_EARNINGS = {
    "today": {"total": 2850, "rides": 12, "hours": 6.5, "bonus": 450, "tips": 200, "average": 237.5},
    "week": {"total": 18750, "rides": 89, "hours": 42, "bonus": 2100, "tips": 1250, "average": 210.7},
    "month": {"total": 75400, "rides": 342, "hours": 168, "bonus": 8900, "tips": 4200, "average": 220.5},
    "year": {"total": 456800, "rides": 2156, "hours": 1024, "bonus": 58900, "tips": 28400, "average": 212.0},
}


RECENT_EARNINGS = [
    {"id": 1, "type": "ride", "description": "Blue Area → F-7 Markaz", "amount": 180, "time": "2:30 PM", "tip": 20, "rating": 5},
    {"id": 2, "type": "bonus", "description": "Peak Hour Bonus", "amount": 50, "time": "2:00 PM", "tip": 0, "rating": None},
    {"id": 3, "type": "ride", "description": "G-9 → Centaurus Mall", "amount": 220, "time": "1:45 PM", "tip": 30, "rating": 5},
    {"id": 4, "type": "ride", "description": "PWD → PIMS Hospital", "amount": 150, "time": "1:15 PM", "tip": 0, "rating": 4},
    {"id": 5, "type": "bonus", "description": "Consecutive Rides Bonus", "amount": 100, "time": "12:30 PM", "tip": 0, "rating": None},
]


WEEKLY_GOALS = {
    "rides": {"current": 89, "target": 100},
    "earnings": {"current": 18750, "target": 25000},
    "rating": {"current": 4.8, "target": 4.7},
    "hours": {"current": 42, "target": 50},
}


def snapshot(dataset):
    """Deep copy of a dataset so callers can mutate it freely."""
    return copy.deepcopy(dataset)
