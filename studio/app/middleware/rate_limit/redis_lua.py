"""Redis Lua script for the distributed token bucket.

Refill and debit run in one script so that concurrent checks for the same
bucket from any number of instances cannot both spend the last token.
"""

# KEYS[1]  bucket hash (fields: tokens, last_refill)
# ARGV     max_tokens, refill_rate, refill_interval_ms, cost, now_ms, ttl_ms
# Returns  {allowed (0|1), tokens, last_refill}
#
# A missing hash is a full bucket. cost 0 refills without debiting (status
# reads); a negative cost is an error and leaves the hash untouched. The TTL
# is the time an empty bucket needs to fill up, so expiry is
# indistinguishable from the bucket still being there.
CHECK_AND_CONSUME_SCRIPT = """
    local key = KEYS[1]
    local max_tokens = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local refill_interval = tonumber(ARGV[3])
    local cost = tonumber(ARGV[4])
    local now = tonumber(ARGV[5])
    local ttl = tonumber(ARGV[6])
    if cost == nil or cost < 0 then
        return redis.error_reply('invalid cost')
    end

    local state = redis.call('HMGET', key, 'tokens', 'last_refill')
    local tokens = tonumber(state[1])
    local last_refill = tonumber(state[2])
    if tokens == nil or last_refill == nil then
        tokens = max_tokens
        last_refill = now
    end

    local intervals = math.floor((now - last_refill) / refill_interval)
    if intervals > 0 then
        tokens = math.min(max_tokens, tokens + intervals * refill_rate)
        last_refill = now
    end

    local allowed = 0
    if cost > 0 and tokens >= cost then
        tokens = tokens - cost
        allowed = 1
    end

    redis.call('HSET', key, 'tokens', tokens, 'last_refill', last_refill)
    redis.call('PEXPIRE', key, ttl)

    return {allowed, tokens, last_refill}
"""
