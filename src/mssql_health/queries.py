"""Catalog queries issued against each instance."""

VERSION_QUERY = "SELECT @@VERSION AS Version"

HADR_ENABLED_QUERY = "SELECT CAST(SERVERPROPERTY('IsHadrEnabled') AS INT) AS IsHadrEnabled"

REPLICA_STATES_QUERY = """
    SELECT
        ag.name AS AGName,
        ar.replica_server_name AS ReplicaServer,
        ars.role_desc AS Role,
        ars.synchronization_health_desc AS SyncHealth
    FROM sys.availability_groups ag
    INNER JOIN sys.availability_replicas ar
        ON ag.group_id = ar.group_id
    INNER JOIN sys.dm_hadr_availability_replica_states ars
        ON ar.replica_id = ars.replica_id
    ORDER BY ag.name, ar.replica_server_name
"""

AG_DATABASE_SYNC_QUERY = """
    SELECT
        ag.name AS AGName,
        adc.database_name AS DatabaseName,
        drs.synchronization_state_desc AS SyncState,
        drs.synchronization_health_desc AS SyncHealth
    FROM sys.dm_hadr_database_replica_states drs
    INNER JOIN sys.availability_databases_cluster adc
        ON drs.group_id = adc.group_id
        AND drs.group_database_id = adc.group_database_id
    INNER JOIN sys.availability_groups ag
        ON ag.group_id = drs.group_id
    WHERE drs.is_local = 1
    ORDER BY ag.name, adc.database_name
"""

# System databases (database_id 1-4) are never AG members and are left out.
STANDALONE_DATABASES_QUERY = """
    SELECT
        d.name AS DatabaseName,
        d.state_desc AS State,
        d.recovery_model_desc AS RecoveryModel
    FROM sys.databases d
    LEFT JOIN sys.availability_databases_cluster adc
        ON d.name = adc.database_name
    WHERE adc.database_name IS NULL
        AND d.database_id > 4
    ORDER BY d.name
"""
